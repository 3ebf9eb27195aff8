# SPDX-License-Identifier: MIT

from typing import TypedDict


class Workspace(TypedDict):
    id: int
    name: str
