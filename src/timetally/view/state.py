# SPDX-License-Identifier: MIT

"""Display state shared by the terminal views for one invocation."""

from contextvars import ContextVar

# Cleared by --no-header
_show_header_var: ContextVar[bool] = ContextVar("show_header", default=True)


def set_show_header(value: bool) -> None:
    _show_header_var.set(value)


def get_show_header() -> bool:
    return _show_header_var.get()
