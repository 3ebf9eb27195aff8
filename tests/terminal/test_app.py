# SPDX-License-Identifier: MIT

from typer.testing import CliRunner

from timetally.model.dashboard import RefreshOutcome
from timetally.model.refresh import RefreshIntent, RefreshState
from timetally.terminal.app import app, workspace_hint

runner = CliRunner()


def test_workspace_hint_keeps_api_intent() -> None:
    outcome = RefreshOutcome(
        state=RefreshState.SELECT_WORKSPACE, resume_intent=RefreshIntent.FORCE_API
    )

    assert workspace_hint(outcome) == "timetally refresh --api --workspace ID"


def test_workspace_hint_for_cache_only() -> None:
    outcome = RefreshOutcome(
        state=RefreshState.SELECT_WORKSPACE, resume_intent=RefreshIntent.CACHE_ONLY
    )

    assert workspace_hint(outcome) == "timetally refresh --workspace ID"


def test_refetch_rejects_unknown_scope() -> None:
    result = runner.invoke(app, ["refetch", "decade"])

    assert result.exit_code == 2


def test_refetch_alias_rejects_unknown_scope() -> None:
    result = runner.invoke(app, ["rf", "fortnight", "--yes"])

    assert result.exit_code == 2
