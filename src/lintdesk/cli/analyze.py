"""Analyze command — full or incremental run over a workspace."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from ..exceptions import AnalysisCancelledError, LintdeskError
from ..models import AnalysisResult, RunState
from . import app
from ._common import (
    build_orchestrator,
    console,
    fail,
    get_config,
    open_store,
    open_workspace,
)
from .progress import RunProgressDisplay, create_summary_table


@app.command()
def analyze(
    ctx: typer.Context,
    path: Path = typer.Argument(
        Path("."),
        help="Workspace root",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    lint_config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Lint tool configuration (default: .swiftlint.yml in the workspace)",
    ),
    changed_only: bool = typer.Option(
        False,
        "--changed-only",
        help="Only analyse files changed since their last analysis",
    ),
):
    """
    Lint a workspace and store its violations.

    A full run replaces the workspace's stored violations. With
    [bold]--changed-only[/bold], files are linted in batches and only
    changed files are revisited.

    [bold cyan]Examples:[/bold cyan]

      lintdesk analyze .

      lintdesk analyze ~/src/App --changed-only
    """
    config = get_config(ctx)
    workspace = open_workspace(path, config)
    display = RunProgressDisplay(console)

    try:
        with open_store(config) as store:
            orchestrator = build_orchestrator(config, store)
            orchestrator.progress.subscribe(display.update)
            display.start(f"{'Incremental' if changed_only else 'Full'} analysis of {workspace.name}")
            try:
                result = asyncio.run(_run(orchestrator, workspace, lint_config, changed_only))
            finally:
                outcome = orchestrator.last_outcome
                display.finish(_outcome_message(outcome))
    except AnalysisCancelledError:
        console.print("[yellow]Analysis cancelled.[/yellow]")
        raise typer.Exit(130)
    except LintdeskError as e:
        raise fail(e)

    console.print(create_summary_table(result))


async def _run(orchestrator, workspace, lint_config, changed_only: bool) -> AnalysisResult:
    if changed_only:
        return await orchestrator.analyze_changed_files(workspace, lint_config)
    return await orchestrator.analyze(workspace, lint_config)


def _outcome_message(outcome: Optional[RunState]) -> str:
    if outcome is RunState.COMPLETED:
        return "[green]Done![/]"
    if outcome is RunState.CANCELLED:
        return "[yellow]Cancelled[/]"
    return "[red]Failed[/]"
