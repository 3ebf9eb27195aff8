# SPDX-License-Identifier: MIT

from collections.abc import Callable

import pytest

from timetally.model.project import Project
from timetally.model.rounding import RoundingConfig, RoundingMode
from timetally.model.time_entry import TimeEntry
from timetally.service.grouping import group_entries

PROJECTS: list[Project] = [
    {"id": 1, "name": "Website", "client_id": 10, "client_name": "Zeta"},
    {"id": 2, "name": "Backend", "client_id": 11, "client_name": None},
    {"id": 3, "name": "Internal", "client_id": None, "client_name": None},
]
CLIENT_NAMES = {11: "Alpha"}


@pytest.fixture
def entries(make_entry: Callable[..., TimeEntry]) -> list[TimeEntry]:
    return [
        make_entry(1, "2026-02-03T09:00:00Z", 600, project_id=1, description="Ticket 1"),
        make_entry(2, "2026-02-03T10:00:00Z", 600, project_id=1, description="Ticket 1"),
        make_entry(3, "2026-02-03T11:00:00Z", 420, project_id=1, description="Ticket 2"),
        make_entry(4, "2026-02-03T12:00:00Z", 3600, project_id=2, description="API"),
        make_entry(5, "2026-02-03T13:00:00Z", 1800, project_id=3, description=None),
        make_entry(6, "2026-02-03T14:00:00Z", 900, project_id=None, description="Misc"),
        make_entry(7, "2026-02-03T15:00:00Z", 300, project_id=99, description="Lost"),
    ]


def test_groups_by_project_and_description(entries: list[TimeEntry]) -> None:
    grouped = group_entries(entries, PROJECTS, CLIENT_NAMES, None)

    website = next(group for group in grouped if group.project_name == "Website")
    assert [(line.description, line.seconds) for line in website.entries] == [
        ("Ticket 1", 1200),
        ("Ticket 2", 420),
    ]
    assert website.seconds == 1620
    assert website.client_name == "Zeta"


def test_resolves_client_names_and_synthetic_projects(entries: list[TimeEntry]) -> None:
    grouped = group_entries(entries, PROJECTS, CLIENT_NAMES, None)
    by_name = {group.project_name: group for group in grouped}

    assert by_name["Backend"].client_name == "Alpha"
    assert by_name["No Project"].client_name is None
    assert by_name["Unknown Project"].client_name is None
    assert by_name["Internal"].entries[0].description == "No description"


def test_sorted_by_client_then_hours_then_name(entries: list[TimeEntry]) -> None:
    grouped = group_entries(entries, PROJECTS, CLIENT_NAMES, None)

    assert [group.project_name for group in grouped] == [
        "Backend",
        "Website",
        "Internal",
        "No Project",
        "Unknown Project",
    ]


def test_rounds_each_line_once_after_summing(entries: list[TimeEntry]) -> None:
    rounding = RoundingConfig(increment_minutes=15, mode=RoundingMode.CLOSEST)
    grouped = group_entries(entries, PROJECTS, CLIENT_NAMES, rounding)

    website = next(group for group in grouped if group.project_name == "Website")
    # 10m + 10m summed to 20m then rounded, not 15m + 15m
    assert website.entries[0].seconds == 900
    # 7m rounds down to zero
    assert website.entries[1].seconds == 0
    assert website.seconds == 900


@pytest.mark.parametrize(
    "rounding",
    [
        None,
        RoundingConfig(increment_minutes=15, mode=RoundingMode.CLOSEST),
        RoundingConfig(increment_minutes=6, mode=RoundingMode.UP),
        RoundingConfig(increment_minutes=30, mode=RoundingMode.DOWN),
    ],
)
def test_project_total_equals_sum_of_lines(
    entries: list[TimeEntry], rounding: RoundingConfig
) -> None:
    for group in group_entries(entries, PROJECTS, CLIENT_NAMES, rounding):
        assert group.seconds == sum(line.seconds for line in group.entries)


def test_running_entries_are_excluded(make_entry: Callable[..., TimeEntry]) -> None:
    entries = [
        make_entry(1, "2026-02-03T09:00:00Z", 600),
        make_entry(2, "2026-02-03T10:00:00Z", -1700000000, stopped=False),
    ]
    grouped = group_entries(entries, PROJECTS, {}, None)

    assert len(grouped) == 1
    assert grouped[0].seconds == 600
