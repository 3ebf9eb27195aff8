# SPDX-License-Identifier: MIT

from typing import Generic, NamedTuple, Optional, TypedDict, TypeVar

import pendulum

from timetally.model.project import Client, Project
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace
from timetally.time import local_date

CACHE_VERSION = 1

T = TypeVar("T")


class CachedData(TypedDict, Generic[T]):
    data: T
    fetched_at: str  # RFC 3339 with offset


class TimeEntryRangeKey(NamedTuple):
    """Structured form of a cached time entry range.

    On disk the key is the string ``"workspaceId|startRFC3339|endRFC3339"``;
    it is decoded into this tuple as soon as the cache file is read.
    """

    workspace_id: int
    start: pendulum.DateTime
    end: pendulum.DateTime

    @property
    def start_date(self) -> pendulum.Date:
        return local_date(self.start)

    @property
    def end_date(self) -> pendulum.Date:
        return local_date(self.end)

    def intersects(self, start: pendulum.Date, end: pendulum.Date) -> bool:
        return not (self.end_date < start or self.start_date > end)


class CacheFile(TypedDict):
    version: int
    token_hash: str
    workspaces: Optional[CachedData[list[Workspace]]]
    projects: dict[int, CachedData[list[Project]]]
    clients: dict[int, CachedData[list[Client]]]
    time_entries: dict[TimeEntryRangeKey, CachedData[list[TimeEntry]]]
