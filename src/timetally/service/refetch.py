# SPDX-License-Identifier: MIT

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Optional

import pendulum

from timetally.model.date_range import DateRange
from timetally.model.rollup import PeriodRollup, WeekStart
from timetally.remote.source import (
    PaymentRequired,
    RateLimited,
    RemoteDataSource,
    RemoteError,
    Unauthorized,
)
from timetally.remote.toggl import TogglClient
from timetally.repository.cache import CacheRepository
from timetally.repository.credential import CredentialRepository, hash_token
from timetally.repository.quota import QuotaRepository
from timetally.service.rollup import start_of_week
from timetally.time import date_span, date_to_str, format_day_spans

logger = logging.getLogger(__name__)

QUOTA_STOP_REASON = "local quota reached"


class RefetchScope(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class RefetchState(StrEnum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    LOGIN = "login"
    SELECT_WORKSPACE = "select_workspace"


@dataclass(frozen=True, slots=True)
class RefetchPreview:
    scope_label: str
    start: pendulum.Date
    end: pendulum.Date
    days: int
    estimated_calls: int
    remaining_calls: int

    @property
    def exceeds_quota(self) -> bool:
        return self.estimated_calls > self.remaining_calls


@dataclass(frozen=True, slots=True)
class RefetchPlan:
    start: pendulum.Date
    end: pendulum.Date
    scope_label: str

    @classmethod
    def for_scope(
        cls,
        scope: RefetchScope,
        date: pendulum.Date,
        week_start: WeekStart = WeekStart.MONDAY,
    ) -> "RefetchPlan":
        """The day, or the whole week, month or year containing the date."""
        if scope == RefetchScope.DAY:
            return cls(date, date, f"Day {date_to_str(date)}")
        if scope == RefetchScope.WEEK:
            start = start_of_week(date, week_start)
            end = start.add(days=6)
            iso_year, iso_week, _ = start.isocalendar()
            return cls(start, end, f"Week W{iso_week:02} {iso_year}")
        if scope == RefetchScope.MONTH:
            return cls(
                date.start_of("month"),
                date.end_of("month"),
                f"Month {date.format('MMM YYYY')}",
            )
        return cls(date.start_of("year"), date.end_of("year"), f"Year {date.year}")

    @classmethod
    def from_period(cls, period: PeriodRollup, scope_name: str) -> "RefetchPlan":
        return cls(period.start, period.end, f"{scope_name} {period.label}")

    @property
    def days(self) -> list[pendulum.Date]:
        return date_span(self.start, self.end)

    def preview(self, quota: QuotaRepository) -> RefetchPreview:
        day_count = len(self.days)
        return RefetchPreview(
            scope_label=self.scope_label,
            start=self.start,
            end=self.end,
            days=day_count,
            estimated_calls=day_count,
            remaining_calls=quota.remaining(),
        )


@dataclass(slots=True)
class RefetchOutcome:
    state: RefetchState
    message: str
    fetched_days: list[pendulum.Date] = field(default_factory=list)
    skipped_days: list[pendulum.Date] = field(default_factory=list)
    stop_reason: Optional[str] = None


def stop_reason_for(error: RemoteError) -> str:
    if isinstance(error, PaymentRequired):
        return "Toggl returned 402 Payment Required"
    if isinstance(error, RateLimited):
        return "Toggl rate limit reached"
    return error.message


def refetch(
    plan: RefetchPlan,
    cache: CacheRepository,
    quota: QuotaRepository,
    credentials: CredentialRepository,
    workspace_id: Optional[int],
    source_factory: Callable[[str], RemoteDataSource] = TogglClient,
) -> RefetchOutcome:
    """
    Fetch the plan's days from the API one day at a time, caching each day.

    Every day costs one quota unit. The loop stops at the first remote failure
    or once the quota is spent; the days fetched so far stay cached. An
    Unauthorized response clears the stored token and cache.
    """
    token = credentials.read_token()
    if token is None:
        return RefetchOutcome(state=RefetchState.LOGIN, message="No API token found. Please login.")
    if workspace_id is None:
        return RefetchOutcome(
            state=RefetchState.SELECT_WORKSPACE, message="Select a workspace first."
        )

    quota.ensure_today()
    cache.load(hash_token(token))
    source = source_factory(token)

    days = plan.days
    fetched: list[pendulum.Date] = []
    stop_reason: Optional[str] = None

    for day in days:
        if quota.is_exhausted():
            stop_reason = QUOTA_STOP_REASON
            break

        quota.consume()
        day_range = DateRange.from_bounds(day, day)
        start, end = day_range.as_rfc3339()
        try:
            entries = source.fetch_time_entries(start, end)
        except Unauthorized as e:
            logger.warning("token rejected during refetch, clearing stored token and cache")
            credentials.clear_token()
            cache.clear()
            return RefetchOutcome(
                state=RefetchState.LOGIN,
                message=e.message,
                fetched_days=fetched,
                skipped_days=days[len(fetched) :],
            )
        except RemoteError as e:
            stop_reason = stop_reason_for(e)
            break

        cache.put_time_entries(day_range.range_key(workspace_id), entries)
        fetched.append(day)

    if len(fetched) == len(days):
        return RefetchOutcome(
            state=RefetchState.COMPLETE,
            message=f"Refetched {len(days)} day(s) for {plan.scope_label}.",
            fetched_days=fetched,
        )

    skipped = days[len(fetched) :]
    logger.warning("refetch stopped after %d/%d day(s): %s", len(fetched), len(days), stop_reason)
    message = (
        f"Partial refetch {len(fetched)}/{len(days)} day(s). "
        f"Cached: {format_day_spans(fetched)}. "
        f"Stopped: {stop_reason}. "
        f"Skipped: {format_day_spans(skipped)}."
    )
    return RefetchOutcome(
        state=RefetchState.PARTIAL,
        message=message,
        fetched_days=fetched,
        skipped_days=skipped,
        stop_reason=stop_reason,
    )
