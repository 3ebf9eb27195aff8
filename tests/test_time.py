# SPDX-License-Identifier: MIT

import pendulum

from timetally.time import (
    date_span,
    format_day_spans,
    local_date,
    parse_rfc3339,
    rfc3339_to_local_date,
)


def test_format_day_spans_collapses_runs() -> None:
    days = [
        pendulum.date(2026, 2, 5),
        pendulum.date(2026, 2, 1),
        pendulum.date(2026, 2, 2),
        pendulum.date(2026, 2, 3),
        pendulum.date(2026, 2, 9),
    ]

    assert format_day_spans(days) == "2026-02-01→2026-02-03, 2026-02-05, 2026-02-09"


def test_format_day_spans_empty() -> None:
    assert format_day_spans([]) == "none"


def test_date_span_is_inclusive() -> None:
    days = date_span(pendulum.date(2026, 2, 27), pendulum.date(2026, 3, 1))

    assert days == [
        pendulum.date(2026, 2, 27),
        pendulum.date(2026, 2, 28),
        pendulum.date(2026, 3, 1),
    ]
    assert date_span(pendulum.date(2026, 3, 1), pendulum.date(2026, 2, 1)) == []


def test_parse_rfc3339_tolerates_garbage() -> None:
    assert parse_rfc3339("2026-02-03T09:00:00+00:00") == pendulum.datetime(2026, 2, 3, 9)
    assert parse_rfc3339("garbage") is None
    assert rfc3339_to_local_date("garbage") is None


def test_local_date_follows_local_timezone() -> None:
    pendulum.set_local_timezone(pendulum.timezone("America/New_York"))

    assert local_date(pendulum.datetime(2026, 2, 3, 2)) == pendulum.date(2026, 2, 2)
