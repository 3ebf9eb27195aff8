# SPDX-License-Identifier: MIT

from collections.abc import Callable, Iterator
from typing import Any, Optional

import pendulum
import pytest

from timetally import time
from timetally.configuration import TOKEN_ENV_VAR
from timetally.model.date_range import DateRange
from timetally.model.project import Client, Project
from timetally.model.rollup import WeekStart
from timetally.model.settings import DashboardSettings
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace
from timetally.remote.source import RemoteError
from timetally.repository.cache import CacheRepository
from timetally.repository.credential import CredentialRepository
from timetally.repository.quota import QuotaRepository
from timetally.service.refresh import RefreshContext

TODAY = "2026-02-03"
TOKEN = "secret-token"


def build_entry(
    entry_id: int,
    start: str,
    duration: int,
    project_id: Optional[int] = 1,
    description: Optional[str] = "Work",
    stopped: bool = True,
) -> TimeEntry:
    start_dt = time.datetime_from_str(start)
    return {
        "id": entry_id,
        "description": description,
        "duration": duration,
        "start": start_dt,
        "stop": start_dt.add(seconds=duration) if stopped else None,
        "project_id": project_id,
    }


class FakeSource:
    """In-memory remote data source that records every call."""

    def __init__(
        self,
        workspaces: Optional[list[Workspace]] = None,
        projects: Optional[list[Project]] = None,
        clients: Optional[list[Client]] = None,
        entries: Optional[list[TimeEntry]] = None,
    ) -> None:
        self.workspaces = workspaces if workspaces is not None else [{"id": 7, "name": "Acme"}]
        self.projects = (
            projects
            if projects is not None
            else [{"id": 1, "name": "Website", "client_id": None, "client_name": None}]
        )
        self.single_projects: dict[int, Project] = {}
        self.clients = clients if clients is not None else []
        self.entries = entries if entries is not None else []
        self.errors: dict[str, RemoteError] = {}
        self.entry_errors_by_day: dict[str, RemoteError] = {}
        self.calls: list[tuple[Any, ...]] = []

    def __fail(self, name: str) -> None:
        error = self.errors.get(name)
        if error is not None:
            raise error

    def fetch_workspaces(self) -> list[Workspace]:
        self.calls.append(("workspaces",))
        self.__fail("workspaces")
        return list(self.workspaces)

    def fetch_projects(self, workspace_id: int) -> list[Project]:
        self.calls.append(("projects", workspace_id))
        self.__fail("projects")
        return list(self.projects)

    def fetch_project(self, workspace_id: int, project_id: int) -> Project:
        self.calls.append(("project", workspace_id, project_id))
        self.__fail("project")
        if project_id not in self.single_projects:
            raise RemoteError(f"project {project_id} not found")
        return self.single_projects[project_id]

    def fetch_clients(self, workspace_id: int) -> list[Client]:
        self.calls.append(("clients", workspace_id))
        self.__fail("clients")
        return list(self.clients)

    def fetch_time_entries(self, start: str, end: str) -> list[TimeEntry]:
        self.calls.append(("time_entries", start, end))
        start_date = time.rfc3339_to_local_date(start)
        end_date = time.rfc3339_to_local_date(end)
        assert start_date is not None and end_date is not None
        error = self.entry_errors_by_day.get(time.date_to_str(start_date))
        if error is not None:
            raise error
        self.__fail("time_entries")
        return [
            entry
            for entry in self.entries
            if start_date <= time.local_date(entry["start"]) <= end_date
        ]


@pytest.fixture(autouse=True)
def utc_local_timezone() -> Iterator[None]:
    pendulum.set_local_timezone(pendulum.timezone("UTC"))
    yield
    pendulum.set_local_timezone()


@pytest.fixture
def make_entry() -> Callable[..., TimeEntry]:
    return build_entry


@pytest.fixture
def cache(tmp_path: Any) -> CacheRepository:
    return CacheRepository(tmp_path / "cache.json")


@pytest.fixture
def quota(tmp_path: Any) -> QuotaRepository:
    return QuotaRepository(tmp_path / "quota.json", limit=30, today=lambda: TODAY)


@pytest.fixture
def credentials(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> CredentialRepository:
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    repository = CredentialRepository(tmp_path / "token")
    repository.write_token(TOKEN)
    return repository


@pytest.fixture
def settings() -> DashboardSettings:
    return DashboardSettings(
        rounding=None,
        week_start=WeekStart.MONDAY,
        include_weekends=False,
        target_hours=8.0,
        non_working_days=frozenset(),
    )


@pytest.fixture
def context(
    cache: CacheRepository,
    quota: QuotaRepository,
    credentials: CredentialRepository,
    settings: DashboardSettings,
) -> RefreshContext:
    day = pendulum.date(2026, 2, 3)
    return RefreshContext(
        cache=cache,
        quota=quota,
        credentials=credentials,
        date_range=DateRange.from_bounds(day, day),
        settings=settings,
    )


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_source() -> type[FakeSource]:
    return FakeSource
