# SPDX-License-Identifier: MIT

from typing import Callable, Hashable, Optional

import pendulum

from timetally.model.rollup import (
    DailyTotal,
    PeriodRollup,
    PeriodSummary,
    RollupSet,
    RollupView,
    TargetSettings,
    WeekStart,
)
from timetally.model.rounding import RoundingConfig
from timetally.model.time_entry import TimeEntry
from timetally.service.rounding import round_seconds
from timetally.time import (
    date_span,
    date_to_str,
    local_date,
    month_end,
    month_start,
    year_end,
    year_start,
)

DELTA_DEAD_ZONE_HOURS = 0.005


def hours_from_seconds(seconds: int) -> float:
    return seconds / 3600.0


def start_of_week(date: pendulum.Date, week_start: WeekStart) -> pendulum.Date:
    # pendulum: Monday == 0 ... Sunday == 6
    offset = date.weekday()
    if week_start == WeekStart.SUNDAY:
        offset = (offset + 1) % 7
    return date.subtract(days=offset)


def weekly_label(
    start: pendulum.Date, end: pendulum.Date, week_start: WeekStart
) -> str:
    iso_year, iso_week, _ = start_of_week(start, week_start).isocalendar()
    return f"W{iso_week:02} {iso_year} ({date_to_str(start)} → {date_to_str(end)})"


def monthly_label(start: pendulum.Date, end: pendulum.Date) -> str:
    return start.format("MMM YYYY")


def yearly_label(start: pendulum.Date, end: pendulum.Date) -> str:
    return str(start.year)


def build_daily_totals(
    entries: list[TimeEntry],
    start: pendulum.Date,
    end: pendulum.Date,
    rounding: Optional[RoundingConfig],
) -> list[DailyTotal]:
    """
    One total per calendar date in [start, end], zero for days without entries.

    Each entry is rounded on its own before it is added to its local start date.
    """
    totals: dict[pendulum.Date, int] = {}
    for entry in entries:
        date = local_date(entry["start"])
        if date < start or date > end:
            continue
        totals[date] = totals.get(date, 0) + round_seconds(entry["duration"], rounding)

    return [DailyTotal(date=day, seconds=totals.get(day, 0)) for day in date_span(start, end)]


def fold_periods(
    daily: list[DailyTotal],
    key: Callable[[pendulum.Date], Hashable],
    label: Callable[[pendulum.Date, pendulum.Date], str],
) -> list[PeriodRollup]:
    """Group consecutive days sharing the same key into periods."""
    periods: list[PeriodRollup] = []
    current_key: Optional[Hashable] = None

    for day in daily:
        day_key = key(day.date)
        if not periods or day_key != current_key:
            current_key = day_key
            periods.append(
                PeriodRollup(label="", start=day.date, end=day.date, days=0, seconds=0)
            )
        period = periods[-1]
        period.end = day.date
        period.days += 1
        period.seconds += day.seconds

    for period in periods:
        period.label = label(period.start, period.end)
    return periods


def build_weekly_rollups(
    daily: list[DailyTotal], week_start: WeekStart
) -> list[PeriodRollup]:
    return fold_periods(
        daily,
        key=lambda date: start_of_week(date, week_start),
        label=lambda start, end: weekly_label(start, end, week_start),
    )


def build_monthly_rollups(daily: list[DailyTotal]) -> list[PeriodRollup]:
    return fold_periods(
        daily, key=lambda date: (date.year, date.month), label=monthly_label
    )


def build_yearly_rollups(daily: list[DailyTotal]) -> list[PeriodRollup]:
    return fold_periods(daily, key=lambda date: date.year, label=yearly_label)


def build_rollups(
    entries: list[TimeEntry],
    start: pendulum.Date,
    end: pendulum.Date,
    rounding: Optional[RoundingConfig],
    week_start: WeekStart,
) -> RollupSet:
    daily = build_daily_totals(entries, start, end, rounding)
    return RollupSet(
        daily=daily,
        weekly=build_weekly_rollups(daily, week_start),
        monthly=build_monthly_rollups(daily),
        yearly=build_yearly_rollups(daily),
    )


def rollup_bounds(
    start: pendulum.Date, end: pendulum.Date, view: RollupView
) -> tuple[pendulum.Date, pendulum.Date]:
    """The span rollups are built over for an active range: whole months, or whole years."""
    if view == RollupView.YEARLY:
        return year_start(start), year_end(end)
    return month_start(start), month_end(end)


def target_hours_for_day(day: pendulum.Date, targets: TargetSettings) -> float:
    if day in targets.non_working_days:
        return 0.0
    if not targets.include_weekends and day.isoweekday() > 5:
        return 0.0
    return targets.target_hours


def period_target(
    period: PeriodRollup, targets: TargetSettings
) -> tuple[float, int]:
    """Total target hours over the period and the number of days that carry a target."""
    total = 0.0
    target_days = 0
    for day in date_span(period.start, period.end):
        target = target_hours_for_day(day, targets)
        if target > 0.0:
            target_days += 1
        total += target
    return total, target_days


def normalize_delta(value: float) -> float:
    if abs(value) < DELTA_DEAD_ZONE_HOURS:
        return 0.0
    return value


def period_overtime_hours(
    period: PeriodRollup,
    daily: list[DailyTotal],
    targets: TargetSettings,
    active_end: pendulum.Date,
) -> float:
    """
    Hours worked beyond target from the period start up to the active range end.

    Days after the active range end are not counted. Never negative.
    """
    cutoff = min(period.end, active_end)
    if cutoff < period.start:
        return 0.0

    worked_seconds = 0
    target_total = 0.0
    for day in daily:
        if period.start <= day.date <= cutoff:
            worked_seconds += day.seconds
            target_total += target_hours_for_day(day.date, targets)

    overtime = normalize_delta(hours_from_seconds(worked_seconds) - target_total)
    return max(overtime, 0.0)


def period_worked_until(
    period: PeriodRollup, daily: list[DailyTotal], active_end: pendulum.Date
) -> tuple[int, int]:
    """Seconds worked and the number of days with any work, up to the active range end."""
    cutoff = min(period.end, active_end)
    if cutoff < period.start:
        return 0, 0

    worked_seconds = 0
    worked_days = 0
    for day in daily:
        if period.start <= day.date <= cutoff and day.seconds > 0:
            worked_seconds += day.seconds
            worked_days += 1
    return worked_seconds, worked_days


def summarize_period(
    period: PeriodRollup,
    daily: list[DailyTotal],
    targets: TargetSettings,
    active_end: pendulum.Date,
) -> PeriodSummary:
    worked_hours = hours_from_seconds(period.seconds)
    target_hours, target_days = period_target(period, targets)
    _, worked_days = period_worked_until(period, daily, active_end)
    return PeriodSummary(
        worked_hours=worked_hours,
        target_hours=target_hours,
        target_days=target_days,
        delta=normalize_delta(worked_hours - target_hours),
        overtime=period_overtime_hours(period, daily, targets, active_end),
        worked_days=worked_days,
        average_hours=worked_hours / target_days if target_days > 0 else 0.0,
    )
