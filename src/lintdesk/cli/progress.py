"""Live progress display for ``lintdesk analyze``."""

from __future__ import annotations

import os

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from ..models import AnalysisProgress, AnalysisResult


class RunProgressDisplay:
    """Renders ``AnalysisProgress`` snapshots as a rich progress bar.

    Incremental runs stream their file list, so the total is often unknown;
    the bar then shows a pulsing spinner with the running file count.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def start(self, title: str) -> None:
        """Start the progress display."""
        self.console.print()
        self.console.print(f"[bold cyan]LINTDESK[/] [dim]{title}[/]")
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40, complete_style="cyan", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("Starting...", total=None)

    def update(self, progress: AnalysisProgress) -> None:
        """Listener for the orchestrator's progress slot."""
        if not self._progress or self._task_id is None:
            return
        description = "Analysing"
        if progress.current_file:
            description = f"Analysing {_short(progress.current_file)}"
        self._progress.update(
            self._task_id,
            total=progress.total_files,
            completed=progress.files_processed,
            description=description,
        )

    def finish(self, message: str) -> None:
        """Stop the display with a final message."""
        if self._progress and self._task_id is not None:
            task = self._progress.tasks[0]
            self._progress.update(
                self._task_id,
                total=task.total if task.total is not None else task.completed,
                description=message,
            )
            self._progress.stop()
        self.console.print()


def _short(path: str) -> str:
    name = os.path.basename(path)
    if len(name) > 40:
        name = name[:37] + "..."
    return name


def create_summary_table(result: AnalysisResult) -> Table:
    """Create a summary table for an analysis result."""
    errors = sum(1 for v in result.violations if v.severity == "error")
    warnings = len(result.violations) - errors

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(style="bold")

    table.add_row("Mode", "incremental" if result.incremental else "full")
    table.add_row("Files", str(result.files_analyzed))
    table.add_row("Errors", f"[{'red' if errors else 'green'}]{errors}[/]")
    table.add_row("Warnings", f"[{'yellow' if warnings else 'green'}]{warnings}[/]")
    table.add_row("Duration", f"{result.duration:.2f}s")
    if result.config_hash:
        table.add_row("Config", result.config_hash[:12])
    return table
