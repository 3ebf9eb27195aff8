# SPDX-License-Identifier: MIT

import pendulum
from rich import box
from rich.console import Console
from rich.padding import Padding
from rich.table import Table

from timetally.model.dashboard import Dashboard
from timetally.model.rollup import TargetSettings
from timetally.service.refetch import RefetchPreview
from timetally.service.rollup import summarize_period
from timetally.time import date_to_str
from timetally.view.dashboard import format_hours
from timetally.view.header import header


def delta_style(value: float) -> str:
    if value > 0.0:
        return "green"
    if value < 0.0:
        return "red"
    return "grey50"


def rollups_view(dashboard: Dashboard, targets: TargetSettings) -> None:
    header(dashboard.workspace["name"], f"{dashboard.rollup_view} rollups")

    active_end: pendulum.Date = dashboard.date_range.end_date
    table = Table(box=box.SIMPLE)
    table.add_column("period", style="bold")
    table.add_column("days", justify="right")
    table.add_column("worked", justify="right", style="magenta")
    table.add_column("target", justify="right")
    table.add_column("delta", justify="right")
    table.add_column("overtime", justify="right")
    table.add_column("avg/day", justify="right")

    for period in dashboard.rollups.periods(dashboard.rollup_view):
        summary = summarize_period(period, dashboard.rollups.daily, targets, active_end)
        table.add_row(
            period.label,
            str(period.days),
            format_hours(summary.worked_hours),
            f"{format_hours(summary.target_hours)} ({summary.target_days}d)",
            f"[{delta_style(summary.delta)}]{summary.delta:+.2f}h[/]",
            f"[{delta_style(summary.overtime)}]{format_hours(summary.overtime)}[/]",
            format_hours(summary.average_hours),
        )

    console = Console()
    if not dashboard.rollups.periods(dashboard.rollup_view):
        console.print(Padding("[grey50]No rollup data[/grey50]", (0, 1)))
    else:
        console.print(table)
    if dashboard.status is not None:
        console.print(Padding(f"[yellow]{dashboard.status}[/yellow]", (0, 1)))


def refetch_preview_view(preview: RefetchPreview) -> None:
    header("refetch", preview.scope_label)

    console = Console()
    console.print(
        Padding(
            f"Range: {date_to_str(preview.start)} → {date_to_str(preview.end)}"
            f" ({preview.days} day(s))",
            (0, 1),
        )
    )
    if preview.exceeds_quota:
        warning = (
            f"Warning: needs ~{preview.estimated_calls} call(s), "
            f"only {preview.remaining_calls} local calls remain."
        )
    else:
        warning = (
            f"This may use up to {preview.estimated_calls} API call(s). "
            f"Remaining local budget: {preview.remaining_calls}."
        )
    console.print(Padding(f"[red]{warning}[/red]", (0, 1)))
    console.print(
        Padding(
            "[red]If the quota runs out (402/429), refetch stops and only fetched "
            "days are cached.[/red]",
            (0, 1),
        )
    )
