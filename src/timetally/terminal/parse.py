# SPDX-License-Identifier: MIT

import re
from typing import Optional

import pendulum
import typer

from timetally.model.date_range import DateRange
from timetally.time import date_from_str, today_local


def parse_date(date_param: Optional[str]) -> Optional[pendulum.Date]:
    """
    Parse a CLI date argument.

    Accepts YYYY-MM-DD, "today"/"t", "yesterday"/"y", or a signed number of
    days relative to today (e.g. "-7").
    """
    if date_param is None:
        return None

    value = date_param.strip()

    if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        try:
            return date_from_str(value)
        except ValueError:
            raise typer.BadParameter("Invalid date format. Use YYYY-MM-DD.")

    # Match numeric input for relative days (e.g., "1", "-1", "365")
    if re.match(r"^[-+]?\d+$", value):
        return today_local().add(days=int(value))

    if value == "today" or value == "t":
        return today_local()
    if value == "yesterday" or value == "y":
        return today_local().subtract(days=1)
    raise typer.BadParameter("Invalid date format. Use YYYY-MM-DD.")


def parse_date_range(
    date: Optional[str], start: Optional[str], end: Optional[str]
) -> DateRange:
    """Build the active range from --date or --start/--end; today when none is given."""
    if date is not None:
        if start is not None or end is not None:
            raise typer.BadParameter("Use either --date or --start/--end, not both.")
        day = parse_date(date)
        assert day is not None
        if day == today_local():
            return DateRange.today()
        if day == today_local().subtract(days=1):
            return DateRange.yesterday()
        return DateRange.from_bounds(day, day)

    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None and end_date is None:
        return DateRange.today()
    if start_date is None:
        raise typer.BadParameter("A start date is required when an end date is given.")
    if end_date is None:
        end_date = today_local()
    if end_date < start_date:
        raise typer.BadParameter("End date must not be before start date.")
    return DateRange.from_bounds(start_date, end_date)
