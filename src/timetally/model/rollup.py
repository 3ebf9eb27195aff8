# SPDX-License-Identifier: MIT

from dataclasses import dataclass, field
from enum import StrEnum

import pendulum


class WeekStart(StrEnum):
    MONDAY = "monday"
    SUNDAY = "sunday"


class RollupView(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True, slots=True)
class DailyTotal:
    date: pendulum.Date
    seconds: int


@dataclass(slots=True)
class PeriodRollup:
    label: str
    start: pendulum.Date
    end: pendulum.Date
    days: int
    seconds: int

    def contains(self, date: pendulum.Date) -> bool:
        return self.start <= date <= self.end


@dataclass(slots=True)
class RollupSet:
    daily: list[DailyTotal] = field(default_factory=list)
    weekly: list[PeriodRollup] = field(default_factory=list)
    monthly: list[PeriodRollup] = field(default_factory=list)
    yearly: list[PeriodRollup] = field(default_factory=list)

    def periods(self, view: RollupView) -> list[PeriodRollup]:
        if view == RollupView.WEEKLY:
            return self.weekly
        if view == RollupView.MONTHLY:
            return self.monthly
        return self.yearly

    def daily_for(self, period: PeriodRollup) -> list[DailyTotal]:
        return [day for day in self.daily if period.contains(day.date)]


@dataclass(frozen=True, slots=True)
class TargetSettings:
    target_hours: float
    include_weekends: bool
    non_working_days: frozenset[pendulum.Date] = frozenset()


@dataclass(frozen=True, slots=True)
class PeriodSummary:
    worked_hours: float
    target_hours: float
    target_days: int
    delta: float
    overtime: float
    worked_days: int
    average_hours: float
