# SPDX-License-Identifier: MIT

from rich import box
from rich.console import Console
from rich.padding import Padding
from rich.table import Table

from timetally.model.dashboard import Dashboard
from timetally.model.workspace import Workspace
from timetally.time import datetime_to_display_local_datetime_str
from timetally.view.header import header


def format_hours(hours: float) -> str:
    return f"{hours:.2f}h"


def dashboard_view(dashboard: Dashboard) -> None:
    header(dashboard.workspace["name"], dashboard.date_range.label)

    console = Console()
    table = Table(box=box.SIMPLE)
    table.add_column("client", style="cyan")
    table.add_column("project", style="bold")
    table.add_column("description")
    table.add_column("hours", justify="right", style="magenta")

    for group in dashboard.grouped:
        table.add_row(
            group.client_name or "",
            group.project_name,
            "",
            format_hours(group.total_hours),
        )
        for entry in group.entries:
            table.add_row("", "", entry.description, format_hours(entry.total_hours))

    if not dashboard.grouped:
        console.print(Padding("[grey50]No time entries in this range[/grey50]", (0, 1)))
    else:
        console.print(table)

    console.print(
        Padding(f"[bold]Total: {format_hours(dashboard.total_hours)}[/bold]", (0, 1))
    )
    if dashboard.last_refreshed is not None:
        last = datetime_to_display_local_datetime_str(dashboard.last_refreshed)
        console.print(Padding(f"[grey50]Last refreshed {last}[/grey50]", (0, 1)))
    if dashboard.status is not None:
        console.print(Padding(f"[yellow]{dashboard.status}[/yellow]", (0, 1)))


def workspaces_view(workspaces: list[Workspace]) -> None:
    header("workspaces", "select one with --workspace")

    table = Table(box=box.SIMPLE)
    table.add_column("id", style="cyan")
    table.add_column("name")
    for workspace in workspaces:
        table.add_row(str(workspace["id"]), workspace["name"])

    console = Console()
    console.print(table)
