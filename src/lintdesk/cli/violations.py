"""Violation commands — list, suppress, resolve and reset stored findings."""

import json
import os
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ..exceptions import LintdeskError
from ..models import Severity, Violation, ViolationFilter
from ..tracking import ChangeTracker
from . import app
from ._common import SEVERITY_STYLES, console, fail, get_config, open_store, open_workspace

_WORKSPACE = typer.Argument(
    Path("."), help="Workspace root", exists=True, file_okay=False, dir_okay=True
)
_REQUIRED_WORKSPACE = typer.Argument(
    ..., help="Workspace root", exists=True, file_okay=False, dir_okay=True
)


@app.command()
def violations(
    ctx: typer.Context,
    path: Path = _WORKSPACE,
    rule: Optional[list[str]] = typer.Option(None, "--rule", "-r", help="Only this rule (repeatable)"),
    file: Optional[list[str]] = typer.Option(
        None, "--file", "-f", help="Only this workspace-relative file (repeatable)"
    ),
    severity: Optional[list[Severity]] = typer.Option(
        None, "--severity", "-s", help="Only this severity (repeatable)", case_sensitive=False
    ),
    suppressed: Optional[bool] = typer.Option(
        None,
        "--suppressed/--unsuppressed",
        help="Only suppressed or only unsuppressed violations",
    ),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows to show", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List stored violations of a workspace, newest first.

    [bold cyan]Examples:[/bold cyan]

      lintdesk violations . --severity error

      lintdesk violations . --rule force_cast --unsuppressed --json
    """
    config = get_config(ctx)
    workspace = open_workspace(path, config)
    flt = ViolationFilter(
        rule_ids=rule or None,
        file_paths=file or None,
        severities=severity or None,
        suppressed_only=suppressed,
    )

    try:
        with open_store(config) as store:
            found = store.fetch(flt, workspace.id)
    except LintdeskError as e:
        raise fail(e)

    if json_output:
        print(json.dumps([_to_dict(v) for v in found[:limit]], indent=2))
        return

    if not found:
        console.print("[green]No violations stored for this workspace.[/green]")
        return

    console.print(_violation_table(found[:limit]))
    if len(found) > limit:
        console.print(f"[dim]... and {len(found) - limit} more (use --limit)[/dim]")


@app.command()
def suppress(
    ctx: typer.Context,
    path: Path = _REQUIRED_WORKSPACE,
    ids: list[str] = typer.Argument(..., help="Violation ids"),
    reason: str = typer.Option(..., "--reason", help="Why the violations are suppressed"),
):
    """Mark violations of the workspace as suppressed."""
    config = get_config(ctx)
    workspace = open_workspace(path, config)
    try:
        with open_store(config) as store:
            count = store.suppress(_owned_ids(store, workspace.id, ids), reason)
    except LintdeskError as e:
        raise fail(e)
    console.print(f"Suppressed [bold]{count}[/bold] of {len(ids)} violation(s).")


@app.command()
def resolve(
    ctx: typer.Context,
    path: Path = _REQUIRED_WORKSPACE,
    ids: list[str] = typer.Argument(..., help="Violation ids"),
):
    """Mark violations of the workspace as resolved."""
    config = get_config(ctx)
    workspace = open_workspace(path, config)
    try:
        with open_store(config) as store:
            count = store.resolve(_owned_ids(store, workspace.id, ids))
    except LintdeskError as e:
        raise fail(e)
    console.print(f"Resolved [bold]{count}[/bold] of {len(ids)} violation(s).")


@app.command()
def reset(
    ctx: typer.Context,
    path: Path = _WORKSPACE,
):
    """
    Forget a workspace: delete its stored violations and file fingerprints.

    The next [bold]--changed-only[/bold] run re-analyses every file.
    """
    config = get_config(ctx)
    workspace = open_workspace(path, config)
    try:
        with open_store(config) as store:
            deleted = store.delete_all(workspace.id)
    except LintdeskError as e:
        raise fail(e)

    tracker = ChangeTracker(config.tracker_cache_path)
    root = str(workspace.path)
    forgotten = 0
    for tracked in tracker.tracked_paths():
        if tracked == root or tracked.startswith(os.path.join(root, "")):
            tracker.untrack(tracked)
            forgotten += 1

    console.print(
        f"Deleted [bold]{deleted}[/bold] violation(s) and {forgotten} fingerprint(s) "
        f"for [blue]{escape(str(workspace.path))}[/blue]."
    )


def _owned_ids(store, workspace_id: str, ids: list[str]) -> list[str]:
    """The subset of ``ids`` stored for this workspace."""
    known = {v.id for v in store.fetch(ViolationFilter.all(), workspace_id)}
    return [i for i in ids if i in known]


def _violation_table(found: list[Violation]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Severity")
    table.add_column("Location")
    table.add_column("Rule", style="cyan")
    table.add_column("Message")
    table.add_column("Id", style="dim", no_wrap=True)

    for v in found:
        location = f"{v.file_path}:{v.line}" + (f":{v.column}" if v.column else "")
        status = ""
        if v.suppressed:
            status = " [dim](suppressed)[/dim]"
        elif v.is_resolved:
            status = " [dim](resolved)[/dim]"
        style = SEVERITY_STYLES.get(v.severity, "white")
        table.add_row(
            f"[{style}]{v.severity.value}[/{style}]",
            escape(location),
            escape(v.rule_id),
            escape(v.message) + status,
            v.id,
        )
    return table


def _to_dict(v: Violation) -> dict:
    return {
        "id": v.id,
        "rule_id": v.rule_id,
        "file_path": v.file_path,
        "line": v.line,
        "column": v.column,
        "severity": v.severity.value,
        "message": v.message,
        "detected_at": v.detected_at.isoformat(),
        "resolved_at": v.resolved_at.isoformat() if v.resolved_at else None,
        "suppressed": v.suppressed,
        "suppression_reason": v.suppression_reason,
        "identity_key": v.identity_key,
    }
