# SPDX-License-Identifier: MIT

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from timetally.model.dashboard import Dashboard, RefreshOutcome
from timetally.model.date_range import DateRange
from timetally.model.refresh import RefreshIntent, RefreshState
from timetally.model.rollup import RollupView
from timetally.model.settings import DashboardSettings
from timetally.repository.cache import CacheRepository
from timetally.repository.configuration import CONFIGURATION_REPO
from timetally.repository.credential import CredentialRepository
from timetally.repository.quota import QuotaRepository
from timetally.service.refetch import (
    RefetchPlan,
    RefetchScope,
    RefetchState,
    refetch as run_refetch,
)
from timetally.service.refresh import NO_CACHE_MESSAGE, RefreshContext, Refresher
from timetally.terminal import configuration
from timetally.terminal.custom_typer import OrderedTyperGroup
from timetally.terminal.parse import parse_date, parse_date_range
from timetally.view import state as view_state
from timetally.view.dashboard import dashboard_view, workspaces_view
from timetally.view.rollup import refetch_preview_view, rollups_view

app = typer.Typer(
    cls=OrderedTyperGroup,
    help="timetally - Toggl Track totals, rounded and rolled up, in the CLI",
    no_args_is_help=True,
)
app.add_typer(configuration.app, name="config, c")

SCOPE_VIEWS = {
    RefetchScope.DAY: RollupView.WEEKLY,
    RefetchScope.WEEK: RollupView.WEEKLY,
    RefetchScope.MONTH: RollupView.MONTHLY,
    RefetchScope.YEAR: RollupView.YEARLY,
}


def configure_logging(verbose: bool, debug: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=debug)],
    )


@app.callback()
def main_callback(
    no_header: Annotated[
        bool,
        typer.Option("--no-header", "-nh", help="Suppress header output"),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log cache and quota decisions")
    ] = False,
    debug: Annotated[
        bool, typer.Option("--debug", help="Log every API call")
    ] = False,
) -> None:
    """
    timetally - Toggl Track totals, rounded and rolled up, in the CLI

    Global options that apply to all commands.
    """
    configure_logging(verbose, debug)
    if no_header:
        view_state.set_show_header(False)


def build_context(
    date_range: DateRange, rollup_view: RollupView = RollupView.WEEKLY
) -> RefreshContext:
    config = CONFIGURATION_REPO.get_config()
    return RefreshContext(
        cache=CacheRepository(),
        quota=QuotaRepository(limit=config["daily_call_limit"]),
        credentials=CredentialRepository(),
        date_range=date_range,
        settings=DashboardSettings.from_configuration(config),
        workspace_id=config["workspace_id"],
        rollup_view=rollup_view,
    )


def workspace_hint(outcome: RefreshOutcome) -> str:
    """The refresh command that resumes an interrupted cycle once a workspace is chosen."""
    api = " --api" if outcome.resume_intent == RefreshIntent.FORCE_API else ""
    return f"timetally refresh{api} --workspace ID"


def run_refresh(context: RefreshContext, intent: RefreshIntent) -> Dashboard:
    """Run one refresh cycle and turn every non-dashboard outcome into an exit."""
    outcome = Refresher(context).refresh(intent)
    console = Console()

    if outcome.state == RefreshState.DASHBOARD and outcome.dashboard is not None:
        if CONFIGURATION_REPO.config["workspace_id"] != context.workspace_id:
            CONFIGURATION_REPO.update_config(workspace_id=context.workspace_id)
        return outcome.dashboard

    if outcome.state == RefreshState.SELECT_WORKSPACE:
        workspaces_view(outcome.workspaces)
        console.print(f"Pick a workspace: [bold]{workspace_hint(outcome)}[/bold]")
    elif outcome.state == RefreshState.LOGIN:
        console.print(f"[red]{outcome.message}[/red]")
        console.print("Run [bold]timetally login TOKEN[/bold] to store an API token.")
    else:
        console.print(f"[red]{outcome.message}[/red]")
        if outcome.message == NO_CACHE_MESSAGE:
            console.print("Run [bold]timetally refresh --api[/bold] to fetch.")
    raise typer.Exit(code=1)


@app.command("login, li")
def login(
    token: Annotated[str, typer.Argument(help="Toggl Track API token")],
) -> None:
    """Store the Toggl Track API token."""
    if not token.strip():
        raise typer.BadParameter("Token must not be empty.")
    CredentialRepository().write_token(token)
    Console().print("Token stored. Run [bold]timetally refresh --api[/bold] to fetch.")


@app.command("logout, lo")
def logout() -> None:
    """Forget the stored API token and the cache built with it."""
    CredentialRepository().clear_token()
    CacheRepository().clear()
    Console().print("Logged out.")


@app.command("refresh, r")
def refresh(
    api: Annotated[
        bool, typer.Option("--api", "-a", help="Call the Toggl API (uses quota)")
    ] = False,
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Single day: YYYY-MM-DD, today, yesterday or offset"),
    ] = None,
    start: Annotated[
        Optional[str], typer.Option("--start", "-s", help="First day of the range")
    ] = None,
    end: Annotated[
        Optional[str], typer.Option("--end", "-e", help="Last day of the range")
    ] = None,
    shift: Annotated[
        int,
        typer.Option("--shift", "-p", help="Move the range by its own length N times"),
    ] = 0,
    workspace: Annotated[
        Optional[int], typer.Option("--workspace", "-w", help="Workspace id to use")
    ] = None,
) -> None:
    """Show grouped totals for a date range, from the cache unless --api is given."""
    date_range = parse_date_range(date, start, end)
    if shift:
        date_range = date_range.shift(shift)
    context = build_context(date_range)
    if workspace is not None:
        context.workspace_id = workspace

    intent = RefreshIntent.FORCE_API if api else RefreshIntent.CACHE_ONLY
    dashboard_view(run_refresh(context, intent))


@app.command("rollups, ro")
def rollups(
    view: Annotated[
        RollupView, typer.Option("--view", "-v", help="Rollup granularity")
    ] = RollupView.WEEKLY,
    api: Annotated[
        bool, typer.Option("--api", "-a", help="Call the Toggl API (uses quota)")
    ] = False,
    date: Annotated[Optional[str], typer.Option("--date", "-d")] = None,
    start: Annotated[Optional[str], typer.Option("--start", "-s")] = None,
    end: Annotated[Optional[str], typer.Option("--end", "-e")] = None,
) -> None:
    """Show weekly, monthly or yearly totals against the daily target."""
    context = build_context(parse_date_range(date, start, end), rollup_view=view)
    intent = RefreshIntent.FORCE_API if api else RefreshIntent.CACHE_ONLY
    dashboard = run_refresh(context, intent)
    rollups_view(dashboard, context.settings.targets)


@app.command("refetch, rf")
def refetch(
    scope: Annotated[RefetchScope, typer.Argument(help="Span to refetch")],
    date: Annotated[str, typer.Argument(help="Any day inside the scope")] = "today",
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Refetch time entries day by day for a whole day, week, month or year."""
    day = parse_date(date)
    assert day is not None

    context = build_context(DateRange.from_bounds(day, day), rollup_view=SCOPE_VIEWS[scope])
    plan = RefetchPlan.for_scope(scope, day, context.settings.week_start)
    context.quota.ensure_today()
    refetch_preview_view(plan.preview(context.quota))
    if not yes:
        typer.confirm("Continue?", abort=True)

    outcome = run_refetch(
        plan,
        context.cache,
        context.quota,
        context.credentials,
        context.workspace_id,
    )
    console = Console()
    if outcome.state == RefetchState.LOGIN:
        console.print(f"[red]{outcome.message}[/red]")
        raise typer.Exit(code=1)
    if outcome.state == RefetchState.SELECT_WORKSPACE:
        console.print(f"[red]{outcome.message}[/red]")
        console.print("Run [bold]timetally refresh --api --workspace ID[/bold] first.")
        raise typer.Exit(code=1)

    style = "green" if outcome.state == RefetchState.COMPLETE else "red"
    console.print(f"[{style}]{outcome.message}[/{style}]")

    context.date_range = DateRange.from_bounds(plan.start, plan.end)
    dashboard = run_refresh(context, RefreshIntent.CACHE_ONLY)
    rollups_view(dashboard, context.settings.targets)


@app.command("quota, q")
def quota() -> None:
    """Show today's local API call budget."""
    config = CONFIGURATION_REPO.get_config()
    repository = QuotaRepository(limit=config["daily_call_limit"])
    repository.ensure_today()

    table = Table()
    table.add_column("Date", style="cyan")
    table.add_column("Used", style="magenta")
    table.add_column("Remaining", style="magenta")
    table.add_column("Limit")
    table.add_row(
        repository.quota["date"],
        str(repository.used),
        str(repository.remaining()),
        str(repository.limit),
    )
    Console().print(table)


def run() -> None:
    app()
