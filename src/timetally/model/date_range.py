# SPDX-License-Identifier: MIT

from dataclasses import dataclass

import pendulum

from timetally.model.cache import TimeEntryRangeKey
from timetally.time import date_to_str, datetime_to_iso_str, today_local


def start_of_local_day(date: pendulum.Date) -> pendulum.DateTime:
    return pendulum.datetime(date.year, date.month, date.day, tz="local")


def end_of_local_day(date: pendulum.Date) -> pendulum.DateTime:
    return pendulum.datetime(date.year, date.month, date.day, 23, 59, 59, tz="local")


@dataclass(frozen=True, slots=True)
class DateRange:
    """Active reporting window: local midnight of the first day to 23:59:59 of the last."""

    start: pendulum.DateTime
    end: pendulum.DateTime
    label: str

    @classmethod
    def today(cls) -> "DateRange":
        today = today_local()
        return cls(
            start=start_of_local_day(today),
            end=end_of_local_day(today),
            label=f"Today ({date_to_str(today)})",
        )

    @classmethod
    def yesterday(cls) -> "DateRange":
        day = today_local().subtract(days=1)
        return cls(
            start=start_of_local_day(day),
            end=end_of_local_day(day),
            label=f"Yesterday ({date_to_str(day)})",
        )

    @classmethod
    def from_bounds(cls, start_date: pendulum.Date, end_date: pendulum.Date) -> "DateRange":
        if end_date < start_date:
            raise ValueError("end date must not be before start date")
        if start_date == end_date:
            label = date_to_str(start_date)
        else:
            label = f"{date_to_str(start_date)} → {date_to_str(end_date)}"
        return cls(
            start=start_of_local_day(start_date),
            end=end_of_local_day(end_date),
            label=label,
        )

    @property
    def start_date(self) -> pendulum.Date:
        return self.start.date()

    @property
    def end_date(self) -> pendulum.Date:
        return self.end.date()

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def as_rfc3339(self) -> tuple[str, str]:
        return datetime_to_iso_str(self.start), datetime_to_iso_str(self.end)

    def range_key(self, workspace_id: int) -> TimeEntryRangeKey:
        return TimeEntryRangeKey(workspace_id, self.start, self.end)

    def shift(self, direction: int) -> "DateRange":
        """Move the window by its own length; a negative direction goes back in time."""
        offset = self.days * direction
        return DateRange.from_bounds(
            self.start_date.add(days=offset), self.end_date.add(days=offset)
        )
