# SPDX-License-Identifier: MIT

from typing import TypedDict

QUOTA_VERSION = 1


class Quota(TypedDict):
    version: int
    date: str  # YYYY-MM-DD, local
    used_calls: int
