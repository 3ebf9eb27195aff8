# SPDX-License-Identifier: MIT

from typing import Protocol

from timetally.model.project import Client, Project
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace


class RemoteError(Exception):
    """A failed call to the remote time-tracking service."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(RemoteError):
    def __init__(self) -> None:
        super().__init__("Invalid token. Please login.")


class PaymentRequired(RemoteError):
    def __init__(self) -> None:
        super().__init__("Toggl API error: 402 Payment Required")


class RateLimited(RemoteError):
    def __init__(self) -> None:
        super().__init__("Toggl API rate limit reached.")


class ServerError(RemoteError):
    pass


class NetworkError(RemoteError):
    pass


class RemoteDataSource(Protocol):
    def fetch_workspaces(self) -> list[Workspace]: ...

    def fetch_projects(self, workspace_id: int) -> list[Project]: ...

    def fetch_project(self, workspace_id: int, project_id: int) -> Project: ...

    def fetch_clients(self, workspace_id: int) -> list[Client]: ...

    def fetch_time_entries(self, start: str, end: str) -> list[TimeEntry]: ...
