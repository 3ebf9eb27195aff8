# SPDX-License-Identifier: MIT

from typing import Optional

from timetally.model.grouping import GroupedEntry, GroupedProject
from timetally.model.project import Project
from timetally.model.rounding import RoundingConfig
from timetally.model.time_entry import TimeEntry
from timetally.service.rounding import round_seconds

NO_PROJECT_NAME = "No Project"
UNKNOWN_PROJECT_NAME = "Unknown Project"
NO_DESCRIPTION = "No description"


def completed_entries(entries: list[TimeEntry]) -> list[TimeEntry]:
    """Entries that have stopped; running entries carry no final duration yet."""
    return [entry for entry in entries if entry["stop"] is not None]


def resolve_project_label(
    project_id: Optional[int],
    projects_by_id: dict[int, Project],
    client_names: dict[int, str],
) -> tuple[str, Optional[str]]:
    if project_id is None:
        return NO_PROJECT_NAME, None

    project = projects_by_id.get(project_id)
    if project is None:
        return UNKNOWN_PROJECT_NAME, None

    client_name = project["client_name"]
    if client_name is None and project["client_id"] is not None:
        client_name = client_names.get(project["client_id"])
    return project["name"], client_name


def group_entries(
    entries: list[TimeEntry],
    projects: list[Project],
    client_names: dict[int, str],
    rounding: Optional[RoundingConfig],
) -> list[GroupedProject]:
    """
    Fold entries into per-project groups of per-description lines.

    Raw seconds are summed per (project, description) first and each line is
    rounded once. A project's total is the sum of its rounded lines so the
    displayed total always matches the displayed lines.

    Projects are ordered by client name (projects without a client last),
    then by total descending, then by project name. Lines within a project
    are ordered by total descending, then description.
    """
    projects_by_id = {project["id"]: project for project in projects}

    # (project_id) -> description -> raw seconds
    raw_by_project: dict[Optional[int], dict[str, int]] = {}
    for entry in completed_entries(entries):
        description = entry["description"] or NO_DESCRIPTION
        lines = raw_by_project.setdefault(entry["project_id"], {})
        lines[description] = lines.get(description, 0) + entry["duration"]

    grouped: list[GroupedProject] = []
    for project_id, lines in raw_by_project.items():
        project_name, client_name = resolve_project_label(
            project_id, projects_by_id, client_names
        )
        grouped_entries = [
            GroupedEntry(description=description, seconds=round_seconds(seconds, rounding))
            for description, seconds in lines.items()
        ]
        grouped_entries.sort(key=lambda line: (-line.seconds, line.description))
        grouped.append(
            GroupedProject(
                project_name=project_name,
                client_name=client_name,
                seconds=sum(line.seconds for line in grouped_entries),
                entries=grouped_entries,
            )
        )

    grouped.sort(
        key=lambda group: (
            group.client_name is None,
            group.client_name or "",
            -group.seconds,
            group.project_name,
        )
    )
    return grouped


def total_seconds(groups: list[GroupedProject]) -> int:
    return sum(group.seconds for group in groups)
