# SPDX-License-Identifier: MIT

from dataclasses import dataclass, field
from typing import Optional

import pendulum

from timetally.model.date_range import DateRange
from timetally.model.grouping import GroupedProject
from timetally.model.project import Project
from timetally.model.refresh import Provenance, RefreshIntent, RefreshState
from timetally.model.rollup import RollupSet, RollupView
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace


@dataclass(slots=True)
class Dashboard:
    """Derived views of one refresh cycle; rebuilt on every refresh, never persisted."""

    workspace: Workspace
    date_range: DateRange
    projects: list[Project]
    client_names: dict[int, str]
    entries: list[TimeEntry]
    grouped: list[GroupedProject]
    total_hours: float
    rollups: RollupSet
    rollup_view: RollupView
    last_refreshed: Optional[pendulum.DateTime]
    provenance: Provenance
    status: Optional[str] = None


@dataclass(slots=True)
class RefreshOutcome:
    state: RefreshState
    message: Optional[str] = None
    dashboard: Optional[Dashboard] = None
    workspaces: list[Workspace] = field(default_factory=list)
    # Intent to rerun with once the caller has resolved a blocking step
    resume_intent: Optional[RefreshIntent] = None
