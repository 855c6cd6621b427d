"""Shared CLI helpers."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from ..analysis import AnalysisOrchestrator
from ..config import LintdeskConfig
from ..exceptions import LintdeskError, StorageError
from ..models import Severity, Workspace
from ..parsing import RuleCatalog
from ..persistence import ViolationStore
from ..tool import LintToolAdapter
from ..tracking import ChangeTracker

console = Console()

SEVERITY_STYLES = {Severity.ERROR: "red", Severity.WARNING: "yellow"}


def get_config(ctx: typer.Context) -> LintdeskConfig:
    """Settings resolved by the top-level callback."""
    return ctx.obj["config"]


def open_workspace(path: Path, config: LintdeskConfig) -> Workspace:
    return Workspace.open(path, config.config_filename)


def open_store(config: LintdeskConfig) -> ViolationStore:
    """Open the violation database, creating the data directory on demand."""
    data_dir = Path(config.data_dir).expanduser()
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError("open", str(e), str(data_dir)) from e
    return ViolationStore(config.database_path)


def build_adapter(config: LintdeskConfig) -> LintToolAdapter:
    return LintToolAdapter.from_config(config)


def build_orchestrator(config: LintdeskConfig, store: ViolationStore) -> AnalysisOrchestrator:
    tracker = ChangeTracker(config.tracker_cache_path)
    return AnalysisOrchestrator(build_adapter(config), store, tracker, config)


def fail(error: LintdeskError) -> typer.Exit:
    """Print ``error`` as a one-line message; the caller raises the returned Exit."""
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    return typer.Exit(1)


def build_catalog(config: LintdeskConfig) -> RuleCatalog:
    return RuleCatalog(
        build_adapter(config),
        concurrency=config.enrichment_concurrency,
        timeout=config.detail_timeout_seconds,
    )
