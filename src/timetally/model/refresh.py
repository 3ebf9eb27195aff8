# SPDX-License-Identifier: MIT

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class RefreshIntent(StrEnum):
    CACHE_ONLY = "cache_only"
    FORCE_API = "force_api"


class CacheReason(StrEnum):
    CACHE_ONLY = "cache_only"  # the caller never asked for the API
    QUOTA = "quota"  # the caller asked, but the daily budget is spent
    API_ERROR = "api_error"


class RefreshState(StrEnum):
    DASHBOARD = "dashboard"
    LOGIN = "login"
    SELECT_WORKSPACE = "select_workspace"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Provenance:
    """Where a resolved value came from: live from the API, or the cache and why."""

    reason: Optional[CacheReason] = None
    fetched_at: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.reason is None

    @classmethod
    def live(cls) -> "Provenance":
        return cls()

    @classmethod
    def cached(cls, reason: CacheReason, fetched_at: str) -> "Provenance":
        return cls(reason=reason, fetched_at=fetched_at)


@dataclass(frozen=True, slots=True)
class Resolved(Generic[T]):
    value: T
    provenance: Provenance
