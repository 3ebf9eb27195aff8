# SPDX-License-Identifier: MIT

from dataclasses import dataclass
from typing import Optional

import pendulum

from timetally.configuration import Configuration
from timetally.model.rollup import TargetSettings, WeekStart
from timetally.model.rounding import RoundingConfig
from timetally.time import date_from_str


@dataclass(frozen=True, slots=True)
class DashboardSettings:
    """The user preferences that shape grouping and rollups."""

    rounding: Optional[RoundingConfig]
    week_start: WeekStart
    include_weekends: bool
    target_hours: float
    non_working_days: frozenset[pendulum.Date]

    @classmethod
    def from_configuration(cls, config: Configuration) -> "DashboardSettings":
        return cls(
            rounding=RoundingConfig.from_configuration(config["rounding"]),
            week_start=WeekStart(config["rollups"]["week_start"]),
            include_weekends=config["rollups"]["include_weekends"],
            target_hours=float(config["target_hours"]),
            non_working_days=frozenset(
                date_from_str(day) for day in config["non_working_days"]
            ),
        )

    @property
    def targets(self) -> TargetSettings:
        return TargetSettings(
            target_hours=self.target_hours,
            include_weekends=self.include_weekends,
            non_working_days=self.non_working_days,
        )

