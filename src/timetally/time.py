# SPDX-License-Identifier: MIT

from typing import Optional, cast

import pendulum


def now_local() -> pendulum.DateTime:
    return pendulum.now("local")


def today_local() -> pendulum.Date:
    return pendulum.today("local").date()


def today_str() -> str:
    """Today's local date in 'YYYY-MM-DD' format."""
    return date_to_str(today_local())


def now_rfc3339() -> str:
    return datetime_to_iso_str(now_local())


def datetime_to_iso_str(datetime: pendulum.DateTime) -> str:
    return datetime.isoformat()


def datetime_to_iso_str_optional(
    datetime: Optional[pendulum.DateTime],
) -> Optional[str]:
    if datetime is None:
        return None
    return datetime_to_iso_str(datetime)


def datetime_from_str(datetime: str) -> pendulum.DateTime:
    return cast(pendulum.DateTime, pendulum.parse(datetime))


def datetime_from_str_optional(datetime: Optional[str]) -> Optional[pendulum.DateTime]:
    if datetime is None:
        return None
    return datetime_from_str(datetime)


def parse_rfc3339(value: str) -> Optional[pendulum.DateTime]:
    """Parse an RFC 3339 timestamp, returning None instead of raising."""
    try:
        parsed = pendulum.parse(value)
    except ValueError:
        return None
    if not isinstance(parsed, pendulum.DateTime):
        return None
    return parsed


def local_date(datetime: pendulum.DateTime) -> pendulum.Date:
    return datetime.in_tz("local").date()


def rfc3339_to_local_date(value: str) -> Optional[pendulum.Date]:
    parsed = parse_rfc3339(value)
    if parsed is None:
        return None
    return local_date(parsed)


def date_from_str(date_str: str) -> pendulum.Date:
    """Parse a 'YYYY-MM-DD' string, raising ValueError on any other shape."""
    parsed = pendulum.from_format(date_str, "YYYY-MM-DD")
    return parsed.date()


def date_to_str(date: pendulum.Date) -> str:
    return date.isoformat()


def datetime_to_display_local_datetime_str(datetime: pendulum.DateTime) -> str:
    return datetime.in_tz("local").format("YYYY-MM-DD HH:mm")


def date_span(start: pendulum.Date, end: pendulum.Date) -> list[pendulum.Date]:
    """Every calendar date from start through end, inclusive."""
    days: list[pendulum.Date] = []
    current = start
    while current <= end:
        days.append(current)
        current = current.add(days=1)
    return days


def month_start(date: pendulum.Date) -> pendulum.Date:
    return date.start_of("month")


def month_end(date: pendulum.Date) -> pendulum.Date:
    return date.end_of("month")


def year_start(date: pendulum.Date) -> pendulum.Date:
    return date.start_of("year")


def year_end(date: pendulum.Date) -> pendulum.Date:
    return date.end_of("year")


def format_date_span(start: pendulum.Date, end: pendulum.Date) -> str:
    if start == end:
        return date_to_str(start)
    return f"{date_to_str(start)}→{date_to_str(end)}"


def format_day_spans(days: list[pendulum.Date]) -> str:
    """Collapse a list of dates into comma-separated runs of consecutive days."""
    if not days:
        return "none"

    ordered = sorted(set(days))
    spans: list[str] = []
    range_start = ordered[0]
    range_end = ordered[0]

    for day in ordered[1:]:
        if day == range_end.add(days=1):
            range_end = day
            continue
        spans.append(format_date_span(range_start, range_end))
        range_start = day
        range_end = day
    spans.append(format_date_span(range_start, range_end))
    return ", ".join(spans)
