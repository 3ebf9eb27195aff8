# SPDX-License-Identifier: MIT

from collections.abc import Callable
from dataclasses import replace
from typing import Any

import pendulum

from timetally.model.refresh import CacheReason, RefreshIntent, RefreshState
from timetally.model.rollup import RollupView
from timetally.model.rounding import RoundingConfig, RoundingMode
from timetally.model.time_entry import TimeEntry
from timetally.remote.source import NetworkError, RateLimited, Unauthorized
from timetally.service.refresh import (
    NO_CACHE_MESSAGE,
    RefreshContext,
    Refresher,
    rebuild_dashboard,
    rollup_entries,
)


def _refresher(context: RefreshContext, source: Any) -> Refresher:
    return Refresher(context, source_factory=lambda token: source)


def _warm_cache(context: RefreshContext, source: Any) -> None:
    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)
    assert outcome.state == RefreshState.DASHBOARD
    source.calls.clear()


def test_cache_only_with_empty_cache_makes_no_calls(
    context: RefreshContext, source: Any
) -> None:
    outcome = _refresher(context, source).refresh(RefreshIntent.CACHE_ONLY)

    assert outcome.state == RefreshState.ERROR
    assert outcome.message == NO_CACHE_MESSAGE
    assert source.calls == []
    assert context.quota.used == 0


def test_missing_token_goes_to_login(context: RefreshContext, source: Any) -> None:
    context.credentials.clear_token()

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.LOGIN
    assert source.calls == []


def test_force_api_fetches_live_and_writes_through(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(
        entries=[
            make_entry(1, "2026-02-03T09:00:00Z", 3600),
            make_entry(2, "2026-02-03T11:00:00Z", 1800, stopped=False),
        ]
    )

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.DASHBOARD
    dashboard = outcome.dashboard
    assert dashboard is not None
    assert dashboard.provenance.is_live
    assert dashboard.status is None
    assert dashboard.last_refreshed is not None
    assert [entry["id"] for entry in dashboard.entries] == [1]
    assert dashboard.total_hours == 1.0
    assert context.workspace_id == 7
    # workspaces, projects and time entries
    assert context.quota.used == 3
    assert context.cache.get_workspaces() is not None
    assert context.cache.get_projects(7) is not None


def test_cache_only_serves_cached_data_with_status(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(entries=[make_entry(1, "2026-02-03T09:00:00Z", 3600)])
    _warm_cache(context, source)

    outcome = _refresher(context, source).refresh(RefreshIntent.CACHE_ONLY)

    assert outcome.state == RefreshState.DASHBOARD
    assert source.calls == []
    dashboard = outcome.dashboard
    assert dashboard is not None
    assert dashboard.provenance.reason == CacheReason.CACHE_ONLY
    assert dashboard.status is not None
    assert dashboard.status.startswith("Using cached data (last updated ")
    assert dashboard.last_refreshed is not None
    assert dashboard.total_hours == 1.0


def test_api_error_falls_back_to_cache(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(entries=[make_entry(1, "2026-02-03T09:00:00Z", 3600)])
    _warm_cache(context, source)
    source.errors["time_entries"] = RateLimited()

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.DASHBOARD
    dashboard = outcome.dashboard
    assert dashboard is not None
    assert dashboard.provenance.reason == CacheReason.API_ERROR
    assert dashboard.status is not None
    assert dashboard.status.startswith("Using cached data due to API error")
    assert dashboard.total_hours == 1.0


def test_api_error_without_cache_reports_the_error(
    context: RefreshContext, source: Any
) -> None:
    source.errors["workspaces"] = NetworkError("connection refused")

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.ERROR
    assert outcome.message == "connection refused"


def test_exhausted_quota_uses_cache(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(entries=[make_entry(1, "2026-02-03T09:00:00Z", 3600)])
    _warm_cache(context, source)
    while not context.quota.is_exhausted():
        context.quota.consume()

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.DASHBOARD
    assert source.calls == []
    dashboard = outcome.dashboard
    assert dashboard is not None
    assert dashboard.provenance.reason == CacheReason.QUOTA
    assert dashboard.status is not None
    assert dashboard.status.startswith("Quota reached (30/30). Using cached data")


def test_exhausted_quota_without_cache(context: RefreshContext, source: Any) -> None:
    while not context.quota.is_exhausted():
        context.quota.consume()

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.ERROR
    assert outcome.message == "Quota reached (30/30). No cached data available."
    assert source.calls == []


def test_unauthorized_clears_token_and_cache(
    context: RefreshContext, source: Any
) -> None:
    _warm_cache(context, source)
    source.errors["projects"] = Unauthorized()

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.LOGIN
    assert outcome.message == "Invalid token. Please login."
    assert context.credentials.read_token() is None
    assert not context.cache.path.exists()


def test_no_workspaces(context: RefreshContext, make_source: Any) -> None:
    outcome = _refresher(context, make_source(workspaces=[])).refresh(
        RefreshIntent.FORCE_API
    )

    assert outcome.state == RefreshState.ERROR
    assert outcome.message == "No workspaces found."


def test_multiple_workspaces_ask_for_selection(
    context: RefreshContext, make_source: Any
) -> None:
    workspaces = [{"id": 7, "name": "Acme"}, {"id": 8, "name": "Side"}]
    source = make_source(workspaces=workspaces)

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.SELECT_WORKSPACE
    assert outcome.workspaces == workspaces
    assert outcome.resume_intent == RefreshIntent.FORCE_API

    context.workspace_id = 8
    resumed = _refresher(context, source).refresh(outcome.resume_intent)
    assert resumed.state == RefreshState.DASHBOARD
    assert resumed.dashboard is not None
    assert resumed.dashboard.workspace["id"] == 8


def test_client_names_resolved_for_projects_without_one(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(
        projects=[
            {"id": 1, "name": "Website", "client_id": 11, "client_name": None},
            {"id": 2, "name": "Backend", "client_id": 12, "client_name": "Beta"},
        ],
        clients=[{"id": 11, "name": "Alpha"}, {"id": 12, "name": "Beta"}],
        entries=[make_entry(1, "2026-02-03T09:00:00Z", 3600, project_id=1)],
    )

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.dashboard is not None
    assert outcome.dashboard.client_names == {11: "Alpha", 12: "Beta"}
    assert outcome.dashboard.grouped[0].client_name == "Alpha"
    assert ("clients", 7) in source.calls


def test_orphaned_projects_are_backfilled(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(
        entries=[
            make_entry(1, "2026-02-03T09:00:00Z", 3600, project_id=1),
            make_entry(2, "2026-02-03T10:00:00Z", 1800, project_id=5),
            make_entry(3, "2026-02-03T11:00:00Z", 900, project_id=6),
        ]
    )
    source.single_projects[5] = {
        "id": 5,
        "name": "Archived",
        "client_id": None,
        "client_name": None,
    }

    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    assert outcome.state == RefreshState.DASHBOARD
    assert ("project", 7, 5) in source.calls
    assert ("project", 7, 6) in source.calls
    dashboard = outcome.dashboard
    assert dashboard is not None
    assert [project["name"] for project in dashboard.projects] == ["Archived", "Website"]
    names = {group.project_name for group in dashboard.grouped}
    assert names == {"Website", "Archived", "Unknown Project"}
    cached = context.cache.get_projects(7)
    assert cached is not None
    assert [project["id"] for project in cached["data"]] == [5, 1]


def test_no_backfill_without_api(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(
        entries=[make_entry(1, "2026-02-03T09:00:00Z", 3600, project_id=5)]
    )
    _warm_cache(context, source)

    outcome = _refresher(context, source).refresh(RefreshIntent.CACHE_ONLY)

    assert source.calls == []
    assert outcome.dashboard is not None
    assert outcome.dashboard.grouped[0].project_name == "Unknown Project"


def test_rollups_include_cached_days_outside_active_range(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(
        entries=[
            make_entry(1, "2026-02-02T09:00:00Z", 3600),
            make_entry(2, "2026-02-03T09:00:00Z", 7200),
        ]
    )
    monday = pendulum.date(2026, 2, 2)
    context.date_range = context.date_range.from_bounds(monday, monday)
    _warm_cache(context, source)

    context.date_range = context.date_range.shift(1)
    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)

    dashboard = outcome.dashboard
    assert dashboard is not None
    assert dashboard.total_hours == 2.0
    assert len(dashboard.rollups.daily) == 28
    week = dashboard.rollups.weekly[1]
    assert week.start == monday
    assert week.seconds == 3 * 3600


def test_rebuild_dashboard_applies_new_settings(
    context: RefreshContext, make_source: Any, make_entry: Callable[..., TimeEntry]
) -> None:
    source = make_source(entries=[make_entry(1, "2026-02-03T09:00:00Z", 840)])
    outcome = _refresher(context, source).refresh(RefreshIntent.FORCE_API)
    assert outcome.dashboard is not None
    source.calls.clear()

    context.settings = replace(
        context.settings, rounding=RoundingConfig(15, RoundingMode.UP)
    )
    context.rollup_view = RollupView.YEARLY
    rebuilt = rebuild_dashboard(outcome.dashboard, context)

    assert source.calls == []
    assert rebuilt.total_hours == 0.25
    assert rebuilt.rollup_view == RollupView.YEARLY
    assert len(rebuilt.rollups.daily) == 365


def test_rollup_entries_overlay_fresh_entries_by_id(
    context: RefreshContext, make_entry: Callable[..., TimeEntry]
) -> None:
    context.cache.load("hash")
    monday = pendulum.date(2026, 2, 2)
    tuesday = pendulum.date(2026, 2, 3)
    context.cache.put_time_entries(
        context.date_range.from_bounds(monday, tuesday).range_key(7),
        [
            make_entry(1, "2026-02-02T09:00:00Z", 600, description="stale"),
            make_entry(2, "2026-02-03T09:00:00Z", 600),
        ],
    )
    fresh = [
        make_entry(1, "2026-02-02T09:00:00Z", 900, description="fresh"),
        make_entry(3, "2026-02-03T12:00:00Z", 300, stopped=False),
    ]

    entries = rollup_entries(context.cache, 7, monday, tuesday, fresh)

    assert [entry["id"] for entry in entries] == [1, 2]
    assert entries[0]["description"] == "fresh"
