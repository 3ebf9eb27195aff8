# SPDX-License-Identifier: MIT

from typing import Optional, TypedDict


class Project(TypedDict):
    id: int
    name: str
    client_id: Optional[int]
    client_name: Optional[str]  # denormalized by the API, not always present


class Client(TypedDict):
    id: int
    name: str
