# SPDX-License-Identifier: MIT

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, TypeVar

import pendulum

from timetally import time
from timetally.model.cache import CachedData
from timetally.model.dashboard import Dashboard, RefreshOutcome
from timetally.model.date_range import DateRange
from timetally.model.project import Project
from timetally.model.refresh import (
    CacheReason,
    Provenance,
    RefreshIntent,
    RefreshState,
    Resolved,
)
from timetally.model.rollup import RollupSet, RollupView
from timetally.model.settings import DashboardSettings
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace
from timetally.remote.source import RemoteDataSource, RemoteError, Unauthorized
from timetally.remote.toggl import TogglClient
from timetally.repository.cache import CacheRepository, sort_time_entries
from timetally.repository.credential import CredentialRepository, hash_token
from timetally.repository.quota import QuotaRepository
from timetally.service.grouping import completed_entries, group_entries, total_seconds
from timetally.service.rollup import build_rollups, hours_from_seconds, rollup_bounds

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_CACHE_MESSAGE = "No cached data available. Press r to fetch."
NO_WORKSPACES_MESSAGE = "No workspaces found."
NO_TOKEN_MESSAGE = "No API token found. Please login."


class MissingCacheError(Exception):
    """A resource could be served neither by the API nor by the cache."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def quota_message(quota: QuotaRepository) -> str:
    remaining = quota.remaining()
    if remaining == 0:
        return f"Quota reached ({quota.used}/{quota.limit})."
    return f"Quota low (remaining {remaining}/{quota.limit})."


def quota_exhausted_message(quota: QuotaRepository) -> str:
    return f"{quota_message(quota)} No cached data available."


def cache_status_message(
    reason: CacheReason, fetched_at: Optional[str], quota: QuotaRepository
) -> str:
    parsed = time.parse_rfc3339(fetched_at) if fetched_at is not None else None
    updated = (
        f" (last updated {time.datetime_to_display_local_datetime_str(parsed)})"
        if parsed is not None
        else ""
    )
    if reason == CacheReason.QUOTA:
        return f"{quota_message(quota)} Using cached data{updated}."
    if reason == CacheReason.API_ERROR:
        return f"Using cached data due to API error{updated}."
    return f"Using cached data{updated}."


def missing_project_ids(entries: list[TimeEntry], projects: list[Project]) -> set[int]:
    known = {project["id"] for project in projects}
    return {
        entry["project_id"]
        for entry in entries
        if entry["project_id"] is not None and entry["project_id"] not in known
    }


def select_workspace(
    workspaces: list[Workspace], workspace_id: Optional[int]
) -> Optional[Workspace]:
    """The remembered workspace when it still exists, the only one when there is one."""
    if workspace_id is not None:
        for workspace in workspaces:
            if workspace["id"] == workspace_id:
                return workspace
    if len(workspaces) == 1:
        return workspaces[0]
    return None


def rollup_entries(
    cache: CacheRepository,
    workspace_id: int,
    start: pendulum.Date,
    end: pendulum.Date,
    fresh_entries: list[TimeEntry],
) -> list[TimeEntry]:
    """Cached entries over [start, end] overlaid with freshly resolved ones, stopped only."""
    entries_by_id: dict[int, TimeEntry] = {
        entry["id"]: entry for entry in cache.collect_time_entries(workspace_id, start, end)
    }
    for entry in fresh_entries:
        entries_by_id[entry["id"]] = entry
    return sort_time_entries(completed_entries(list(entries_by_id.values())))


@dataclass(slots=True)
class RefreshContext:
    """Everything a refresh cycle reads and writes, owned by the caller."""

    cache: CacheRepository
    quota: QuotaRepository
    credentials: CredentialRepository
    date_range: DateRange
    settings: DashboardSettings
    workspace_id: Optional[int] = None
    rollup_view: RollupView = RollupView.WEEKLY


def build_rollup_set(
    context: RefreshContext, workspace_id: int, entries: list[TimeEntry]
) -> RollupSet:
    start, end = rollup_bounds(
        context.date_range.start_date, context.date_range.end_date, context.rollup_view
    )
    return build_rollups(
        rollup_entries(context.cache, workspace_id, start, end, entries),
        start,
        end,
        context.settings.rounding,
        context.settings.week_start,
    )


def rebuild_dashboard(dashboard: Dashboard, context: RefreshContext) -> Dashboard:
    """Recompute grouping and rollups after a settings or view change, without any API call."""
    grouped = group_entries(
        dashboard.entries,
        dashboard.projects,
        dashboard.client_names,
        context.settings.rounding,
    )
    return replace(
        dashboard,
        grouped=grouped,
        total_hours=hours_from_seconds(total_seconds(grouped)),
        rollups=build_rollup_set(context, dashboard.workspace["id"], dashboard.entries),
        rollup_view=context.rollup_view,
    )


class Refresher:
    """
    Resolves workspaces, projects, client names and time entries for the
    active date range, then derives the dashboard from them.

    Each resource is fetched from the API only when the intent is FORCE_API
    and local quota remains; otherwise, or when the call fails, it is served
    from the cache. An Unauthorized response aborts the cycle and discards the
    stored token and cache.
    """

    def __init__(
        self,
        context: RefreshContext,
        source_factory: Callable[[str], RemoteDataSource] = TogglClient,
    ) -> None:
        self.context = context
        self._source_factory = source_factory

    def refresh(self, intent: RefreshIntent) -> RefreshOutcome:
        context = self.context
        context.quota.ensure_today()

        token = context.credentials.read_token()
        if token is None:
            return RefreshOutcome(state=RefreshState.LOGIN, message=NO_TOKEN_MESSAGE)
        context.cache.load(hash_token(token))

        source = self._source_factory(token)
        try:
            return self.__refresh(source, intent)
        except Unauthorized as e:
            logger.warning("token rejected, clearing stored token and cache")
            context.credentials.clear_token()
            context.cache.clear()
            return RefreshOutcome(state=RefreshState.LOGIN, message=e.message)
        except MissingCacheError as e:
            return RefreshOutcome(state=RefreshState.ERROR, message=e.message)

    def __refresh(self, source: RemoteDataSource, intent: RefreshIntent) -> RefreshOutcome:
        context = self.context
        allow_api = intent == RefreshIntent.FORCE_API

        workspaces = self.__resolve(
            "workspaces",
            allow_api,
            fetch=source.fetch_workspaces,
            store=context.cache.put_workspaces,
            lookup=context.cache.get_workspaces,
        )
        if not workspaces.value:
            return RefreshOutcome(state=RefreshState.ERROR, message=NO_WORKSPACES_MESSAGE)

        workspace = select_workspace(workspaces.value, context.workspace_id)
        if workspace is None:
            return RefreshOutcome(
                state=RefreshState.SELECT_WORKSPACE,
                workspaces=workspaces.value,
                resume_intent=intent,
            )
        context.workspace_id = workspace["id"]
        workspace_id = workspace["id"]

        projects = self.__resolve(
            "projects",
            allow_api,
            fetch=lambda: source.fetch_projects(workspace_id),
            store=lambda value: context.cache.put_projects(workspace_id, value),
            lookup=lambda: context.cache.get_projects(workspace_id),
        )
        project_list = projects.value
        client_names = self.__resolve_client_names(
            source, allow_api, workspace_id, project_list
        )

        key = context.date_range.range_key(workspace_id)
        start, end = context.date_range.as_rfc3339()
        time_entries = self.__resolve(
            "time entries",
            allow_api,
            fetch=lambda: source.fetch_time_entries(start, end),
            store=lambda value: context.cache.put_time_entries(key, value),
            lookup=lambda: context.cache.find_time_entries(key),
        )
        entries = completed_entries(time_entries.value)

        if allow_api and missing_project_ids(entries, project_list):
            backfilled = self.__backfill_projects(source, workspace_id, entries, project_list)
            if backfilled is not None:
                project_list = backfilled
                client_names = self.__resolve_client_names(
                    source, allow_api, workspace_id, project_list
                )

        provenances = [
            workspaces.provenance,
            projects.provenance,
            time_entries.provenance,
        ]
        provenance = next((p for p in provenances if not p.is_live), Provenance.live())
        fetched_at = self.__relevant_cache_timestamp(time_entries.provenance, provenances)

        if allow_api and provenance.is_live:
            last_refreshed: Optional[pendulum.DateTime] = time.now_local()
        elif fetched_at is not None:
            last_refreshed = time.parse_rfc3339(fetched_at)
        else:
            last_refreshed = None

        status = None
        if provenance.reason is not None:
            status = cache_status_message(provenance.reason, fetched_at, context.quota)
            logger.info("refresh served from cache: %s", provenance.reason)

        grouped = group_entries(entries, project_list, client_names, context.settings.rounding)
        dashboard = Dashboard(
            workspace=workspace,
            date_range=context.date_range,
            projects=project_list,
            client_names=client_names,
            entries=entries,
            grouped=grouped,
            total_hours=hours_from_seconds(total_seconds(grouped)),
            rollups=build_rollup_set(context, workspace_id, entries),
            rollup_view=context.rollup_view,
            last_refreshed=last_refreshed,
            provenance=provenance,
            status=status,
        )
        return RefreshOutcome(
            state=RefreshState.DASHBOARD,
            message=status,
            dashboard=dashboard,
            workspaces=workspaces.value,
        )

    def __resolve(
        self,
        name: str,
        allow_api: bool,
        fetch: Callable[[], T],
        store: Callable[[T], None],
        lookup: Callable[[], Optional[CachedData[T]]],
    ) -> Resolved[T]:
        quota = self.context.quota
        failure: Optional[RemoteError] = None

        if not allow_api:
            reason = CacheReason.CACHE_ONLY
        elif quota.is_exhausted():
            reason = CacheReason.QUOTA
        else:
            quota.consume()
            try:
                value = fetch()
            except Unauthorized:
                raise
            except RemoteError as e:
                logger.warning("fetching %s failed: %s", name, e.message)
                reason = CacheReason.API_ERROR
                failure = e
            else:
                store(value)
                return Resolved(value, Provenance.live())

        cached = lookup()
        if cached is not None:
            logger.info("serving %s from cache (%s)", name, reason)
            return Resolved(cached["data"], Provenance.cached(reason, cached["fetched_at"]))

        if failure is not None:
            raise MissingCacheError(failure.message)
        if reason == CacheReason.QUOTA:
            raise MissingCacheError(quota_exhausted_message(quota))
        raise MissingCacheError(NO_CACHE_MESSAGE)

    def __resolve_client_names(
        self,
        source: RemoteDataSource,
        allow_api: bool,
        workspace_id: int,
        projects: list[Project],
    ) -> dict[int, str]:
        """
        Names for clients referenced by projects that lack a denormalized name.

        The cached client list is consulted first; the API only when ids remain
        unresolved. Failures other than Unauthorized leave names unresolved.
        """
        client_names: dict[int, str] = {}
        missing: set[int] = set()
        for project in projects:
            if project["client_id"] is None:
                continue
            if project["client_name"] is not None:
                client_names[project["client_id"]] = project["client_name"]
            else:
                missing.add(project["client_id"])

        cached = self.context.cache.get_clients(workspace_id)
        if cached is not None:
            for client in cached["data"]:
                if client["id"] in missing:
                    client_names[client["id"]] = client["name"]
                    missing.discard(client["id"])

        if not missing or not allow_api or self.context.quota.is_exhausted():
            return client_names

        self.context.quota.consume()
        try:
            clients = source.fetch_clients(workspace_id)
        except Unauthorized:
            raise
        except RemoteError as e:
            logger.warning("fetching clients failed, names left unresolved: %s", e.message)
            return client_names

        self.context.cache.put_clients(workspace_id, clients)
        for client in clients:
            if client["id"] in missing:
                client_names[client["id"]] = client["name"]
        return client_names

    def __backfill_projects(
        self,
        source: RemoteDataSource,
        workspace_id: int,
        entries: list[TimeEntry],
        projects: list[Project],
    ) -> Optional[list[Project]]:
        """
        Fetch projects referenced by entries but absent from the project list.

        The whole list is refetched once, then each id still missing is fetched
        on its own. Per-project failures other than Unauthorized are skipped.

        Returns:
            The merged project list when it changed, else None
        """
        quota = self.context.quota
        known: dict[int, Project] = {project["id"]: project for project in projects}
        refreshed = dict(known)

        if not quota.is_exhausted():
            quota.consume()
            try:
                refreshed = {
                    project["id"]: project for project in source.fetch_projects(workspace_id)
                }
            except Unauthorized:
                raise
            except RemoteError as e:
                logger.warning("refetching projects for backfill failed: %s", e.message)

        for project_id in sorted(missing_project_ids(entries, list(refreshed.values()))):
            if quota.is_exhausted():
                logger.info("quota exhausted, skipping remaining project backfill")
                break
            quota.consume()
            try:
                refreshed[project_id] = source.fetch_project(workspace_id, project_id)
            except Unauthorized:
                raise
            except RemoteError as e:
                logger.info("could not backfill project %d: %s", project_id, e.message)

        if refreshed == known:
            return None

        merged = sorted(refreshed.values(), key=lambda project: (project["name"], project["id"]))
        self.context.cache.put_projects(workspace_id, merged)
        return merged

    def __relevant_cache_timestamp(
        self, time_entries: Provenance, provenances: list[Provenance]
    ) -> Optional[str]:
        if time_entries.fetched_at is not None:
            return time_entries.fetched_at
        for provenance in provenances:
            if provenance.fetched_at is not None:
                return provenance.fetched_at
        return None
