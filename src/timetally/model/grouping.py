# SPDX-License-Identifier: MIT

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class GroupedEntry:
    description: str
    seconds: int

    @property
    def total_hours(self) -> float:
        return self.seconds / 3600.0


@dataclass(frozen=True, slots=True)
class GroupedProject:
    project_name: str
    client_name: Optional[str]
    seconds: int
    entries: list[GroupedEntry] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return self.seconds / 3600.0
