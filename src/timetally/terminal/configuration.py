# SPDX-License-Identifier: MIT

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from timetally import configuration
from timetally.model.rollup import WeekStart
from timetally.model.rounding import RoundingConfig, RoundingMode
from timetally.repository.configuration import CONFIGURATION_REPO
from timetally.terminal.custom_typer import AliasedTyperGroup
from timetally.terminal.parse import parse_date
from timetally.time import date_to_str

app = typer.Typer(cls=AliasedTyperGroup, no_args_is_help=True)
non_working_app = typer.Typer(cls=AliasedTyperGroup, no_args_is_help=True)
app.add_typer(non_working_app, name="non-working, nw", help="Manage non-working days.")


@app.command("view, v")
def view() -> None:
    """Display current configuration settings."""
    config = CONFIGURATION_REPO.get_config()
    rounding = RoundingConfig.from_configuration(config["rounding"])

    console = Console()
    table = Table()
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("target_hours", f"{config['target_hours']:.2f}")
    table.add_row("rounding", rounding.describe() if rounding is not None else "None")
    table.add_row(
        "include_weekends",
        "✓ Enabled" if config["rollups"]["include_weekends"] else "✗ Disabled",
    )
    table.add_row("week_start", config["rollups"]["week_start"])
    table.add_row("daily_call_limit", str(config["daily_call_limit"]))
    table.add_row(
        "workspace_id",
        str(config["workspace_id"]) if config["workspace_id"] is not None else "None",
    )
    table.add_row("data_path", str(configuration.DATA_PATH))
    table.add_row(
        "non_working_days",
        ", ".join(config["non_working_days"]) if config["non_working_days"] else "None",
    )

    console.print(table)


@app.command("set, s")
def set(
    target_hours: Annotated[
        Optional[float],
        typer.Option("--target-hours", help="Target hours per working day"),
    ] = None,
    rounding_increment: Annotated[
        Optional[int],
        typer.Option("--rounding-increment", help="Rounding increment in minutes"),
    ] = None,
    rounding_mode: Annotated[
        Optional[RoundingMode],
        typer.Option("--rounding-mode", help="closest, up or down"),
    ] = None,
    remove_rounding: Annotated[
        bool, typer.Option("--remove-rounding", help="Disable rounding")
    ] = False,
    include_weekends: Annotated[
        Optional[bool],
        typer.Option(
            "--include-weekends/--exclude-weekends",
            help="Count weekends towards targets",
        ),
    ] = None,
    week_start: Annotated[
        Optional[WeekStart],
        typer.Option("--week-start", help="First day of the week"),
    ] = None,
    daily_call_limit: Annotated[
        Optional[int],
        typer.Option("--daily-call-limit", help="Local API call budget per day"),
    ] = None,
    workspace_id: Annotated[
        Optional[int], typer.Option("--workspace-id", help="Workspace to report on")
    ] = None,
    remove_workspace_id: Annotated[
        bool, typer.Option("--remove-workspace-id", help="Forget the chosen workspace")
    ] = False,
    data_path: Annotated[
        Optional[str],
        typer.Option("--data-path", help="Directory for cache, quota and token"),
    ] = None,
    remove_data_path: Annotated[
        bool, typer.Option("--remove-data-path", help="Use the default data directory")
    ] = False,
) -> None:
    """Update configuration settings."""
    if target_hours is not None and target_hours <= 0:
        raise typer.BadParameter("Target hours must be greater than 0.")
    if daily_call_limit is not None and daily_call_limit < 0:
        raise typer.BadParameter("Daily call limit must not be negative.")
    if remove_rounding and (rounding_increment is not None or rounding_mode is not None):
        raise typer.BadParameter("Cannot set and remove rounding at the same time.")

    rounding = None
    if rounding_increment is not None or rounding_mode is not None:
        current = RoundingConfig.from_configuration(
            CONFIGURATION_REPO.config["rounding"]
        )
        increment = rounding_increment
        if increment is None:
            increment = current.increment_minutes if current is not None else 15
        if increment <= 0:
            raise typer.BadParameter("Rounding increment must be greater than 0.")
        mode = rounding_mode
        if mode is None:
            mode = current.mode if current is not None else RoundingMode.CLOSEST
        rounding = RoundingConfig(increment, mode).to_configuration()

    CONFIGURATION_REPO.update_config(
        target_hours=target_hours,
        rounding=rounding,
        remove_rounding=remove_rounding,
        include_weekends=include_weekends,
        week_start=week_start.value if week_start is not None else None,
        daily_call_limit=daily_call_limit,
        workspace_id=workspace_id,
        remove_workspace_id=remove_workspace_id,
        data_path=data_path,
        remove_data_path=remove_data_path,
    )


@non_working_app.command("add, a")
def add_non_working(
    days: Annotated[list[str], typer.Argument(help="Days as YYYY-MM-DD or offsets")],
) -> None:
    """Mark days as non-working; they carry no target hours."""
    parsed = [parse_date(day) for day in days]
    CONFIGURATION_REPO.add_non_working_days(
        [date_to_str(day) for day in parsed if day is not None]
    )


@non_working_app.command("remove, r")
def remove_non_working(
    days: Annotated[list[str], typer.Argument(help="Days as YYYY-MM-DD or offsets")],
) -> None:
    """Make days count as working days again."""
    parsed = [parse_date(day) for day in days]
    CONFIGURATION_REPO.remove_non_working_days(
        [date_to_str(day) for day in parsed if day is not None]
    )
