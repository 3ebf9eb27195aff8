# SPDX-License-Identifier: MIT

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from timetally.configuration import RoundingConfiguration


class RoundingMode(StrEnum):
    CLOSEST = "closest"
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class RoundingConfig:
    increment_minutes: int
    mode: RoundingMode

    @classmethod
    def from_configuration(
        cls, value: Optional[RoundingConfiguration]
    ) -> Optional["RoundingConfig"]:
        if value is None:
            return None
        return cls(
            increment_minutes=int(value["increment_minutes"]),
            mode=RoundingMode(value["mode"]),
        )

    def to_configuration(self) -> RoundingConfiguration:
        return {
            "increment_minutes": self.increment_minutes,
            "mode": self.mode.value,
        }

    def describe(self) -> str:
        return f"{self.mode.value} {self.increment_minutes}m"
