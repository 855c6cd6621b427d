"""Coordinates analysis runs: tool invocation, parsing, storage and tracking.

Two pipelines share one run lifecycle:

- **Full run** (``analyze``): one tool invocation over the whole workspace,
  the parsed result replaces the workspace snapshot in a single transaction.
- **Batched run** (``analyze_changed_files`` / ``analyze_files``): source
  files are pulled lazily, filtered through the change tracker and linted
  in fixed-size batches. Each batch is committed on its own, so work done
  before a cancellation or failure is kept.

Every run is an ``asyncio.Task`` owned by the orchestrator. Only one run is
active at a time; starting another cancels the active one and waits for it
to unwind first.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Iterator, Optional

from ..config import LintdeskConfig
from ..exceptions import (
    AnalysisCancelledError,
    AnalysisFailedError,
    FileTrackingError,
    LintdeskError,
    WorkspaceNotFoundError,
)
from ..logging_config import get_logger
from ..models import (
    AnalysisProgress,
    AnalysisResult,
    RunState,
    Violation,
    Workspace,
    utcnow,
)
from ..parsing import parse_violations
from .discovery import iter_source_files, take
from .helpers import (
    absolute_paths,
    config_hash,
    filter_to_batch,
    resolve_config_path,
    workspace_key,
)
from .progress import ProgressSlot

logger = get_logger(__name__)


@dataclass
class _Run:
    """Book-keeping for the run in flight."""

    workspace: Workspace
    started_at: datetime = field(default_factory=utcnow)
    total_files: Optional[int] = None
    files_processed: int = 0
    violations_found: int = 0
    current_file: Optional[str] = None
    cancel_requested: bool = False
    finished: bool = False


RunBody = Callable[[_Run], Awaitable[AnalysisResult]]


class AnalysisOrchestrator:
    """Runs analyses with injected collaborators.

    Args:
        adapter: ``LintToolAdapter`` (or any object with ``run_lint``).
        store: ``ViolationStore`` receiving the results.
        tracker: ``ChangeTracker`` deciding which files need re-analysis.
        config: Batch size, exclusions, extensions and config filename.
    """

    def __init__(self, adapter, store, tracker, config: Optional[LintdeskConfig] = None):
        self.adapter = adapter
        self.store = store
        self.tracker = tracker
        self.config = config or LintdeskConfig()
        self.progress = ProgressSlot()
        self._state = RunState.IDLE
        self._last_outcome: Optional[RunState] = None
        self._task: Optional[asyncio.Task] = None
        self._run: Optional[_Run] = None
        self._start_lock = asyncio.Lock()

    @property
    def state(self) -> RunState:
        """``running`` while a run is in flight, else ``idle``."""
        return self._state

    @property
    def last_outcome(self) -> Optional[RunState]:
        """Terminal state of the most recent run, if any."""
        return self._last_outcome

    # ── public API ────────────────────────────────────────────────

    async def analyze(
        self, workspace: Workspace, config_path: Optional[Path | str] = None
    ) -> AnalysisResult:
        """Full analysis: lint the workspace once and replace its snapshot."""

        async def body(run: _Run) -> AnalysisResult:
            return await self._full_run(run, config_path)

        return await self._start(workspace, body)

    async def analyze_changed_files(
        self, workspace: Workspace, config_path: Optional[Path | str] = None
    ) -> AnalysisResult:
        """Incremental analysis of the source files changed since they were last analysed."""

        async def body(run: _Run) -> AnalysisResult:
            self._require_directory(workspace)
            files = iter_source_files(
                workspace.path,
                extensions=self.config.normalized_extensions,
                excluded_directories=self.config.excluded_directories,
            )
            return await self._batched_run(run, files, config_path, only_changed=True)

        return await self._start(workspace, body)

    async def analyze_files(
        self,
        workspace: Workspace,
        paths: Iterable[Path | str],
        config_path: Optional[Path | str] = None,
        only_changed: bool = True,
    ) -> AnalysisResult:
        """Batched analysis of an explicit list of files.

        Relative paths are taken relative to the workspace root. With
        ``only_changed=False`` every listed file is linted.
        """
        files = absolute_paths(workspace, paths)

        async def body(run: _Run) -> AnalysisResult:
            self._require_directory(workspace)
            if not only_changed:
                run.total_files = len(files)
            return await self._batched_run(run, iter(files), config_path, only_changed)

        return await self._start(workspace, body)

    def cancel(self) -> None:
        """Request cancellation of the active run (no-op when idle).

        Batches committed before the request stay committed. The caller
        awaiting the run receives ``AnalysisCancelledError``.
        """
        run, task = self._run, self._task
        if run is None or task is None or task.done():
            return
        run.cancel_requested = True
        logger.info("Cancellation requested for %s", run.workspace.path)
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # From inside the run (e.g. a progress listener) the flag alone stops
        # it at the next batch boundary.
        if task is not current:
            task.cancel()

    async def wait_idle(self) -> None:
        """Wait until any in-flight run has fully unwound."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait([task])

    # ── lifecycle ─────────────────────────────────────────────────

    async def _start(self, workspace: Workspace, body: RunBody) -> AnalysisResult:
        # Held until the new task exists: concurrent starters queue here and
        # each preempts the run created by the one before it.
        async with self._start_lock:
            while self._task is not None and not self._task.done():
                logger.info("Cancelling the active run before starting a new one")
                previous = self._run
                self.cancel()
                await self.wait_idle()
                if previous is not None:
                    self._finish(previous, RunState.CANCELLED)

            run = _Run(workspace=workspace)
            self._run = run
            self._state = RunState.RUNNING
            self._publish(run, RunState.RUNNING)
            task = asyncio.create_task(self._supervise(run, body))
            self._task = task

        try:
            return await task
        except asyncio.CancelledError:
            # A task cancelled before its first step never reaches _supervise.
            self._finish(run, RunState.CANCELLED)
            if run.cancel_requested and task.cancelled() and not _current_task_cancelling():
                raise AnalysisCancelledError(run.files_processed) from None
            raise
        finally:
            if self._task is task:
                self._task = None
                self._run = None

    async def _supervise(self, run: _Run, body: RunBody) -> AnalysisResult:
        try:
            result = await body(run)
        except asyncio.CancelledError:
            self._finish(run, RunState.CANCELLED)
            if run.cancel_requested:
                raise AnalysisCancelledError(run.files_processed) from None
            raise
        except AnalysisCancelledError:
            self._finish(run, RunState.CANCELLED)
            raise
        except LintdeskError as e:
            logger.error("Analysis of %s failed: %s", run.workspace.path, e)
            self._finish(run, RunState.FAILED)
            raise
        except Exception as e:
            logger.exception("Analysis of %s failed unexpectedly", run.workspace.path)
            self._finish(run, RunState.FAILED)
            raise AnalysisFailedError(str(e) or type(e).__name__, cause=e) from e

        run.workspace.last_analyzed = result.completed_at
        self._finish(run, RunState.COMPLETED)
        logger.info(
            "Analysed %d file(s) in %.2fs: %d violation(s)",
            result.files_analyzed,
            result.duration,
            len(result.violations),
        )
        return result

    def _finish(self, run: _Run, outcome: RunState) -> None:
        if run.finished:
            return
        run.finished = True
        self._state = RunState.IDLE
        self._last_outcome = outcome
        self._publish(run, outcome, complete=True)

    def _publish(self, run: _Run, state: RunState, complete: bool = False) -> None:
        self.progress.publish(
            AnalysisProgress(
                state=state,
                started_at=run.started_at,
                current_file=run.current_file,
                files_processed=run.files_processed,
                total_files=run.total_files,
                violations_found=run.violations_found,
                is_complete=complete,
            )
        )

    @staticmethod
    def _raise_if_cancelled(run: _Run) -> None:
        if run.cancel_requested:
            raise AnalysisCancelledError(run.files_processed)

    @staticmethod
    def _require_directory(workspace: Workspace) -> None:
        if not workspace.path.is_dir():
            raise WorkspaceNotFoundError(workspace.path)

    # ── full run ──────────────────────────────────────────────────

    async def _full_run(
        self, run: _Run, config_override: Optional[Path | str]
    ) -> AnalysisResult:
        workspace = run.workspace
        self._require_directory(workspace)
        config_path = resolve_config_path(workspace, config_override, self.config.config_filename)
        logger.debug("Full analysis of %s (config: %s)", workspace.path, config_path)
        run.total_files = await asyncio.to_thread(self._count_sources, workspace)

        raw = await self.adapter.run_lint(config_path, workspace.path)
        violations = parse_violations(raw, workspace.path)
        digest = await asyncio.to_thread(config_hash, config_path)

        self._raise_if_cancelled(run)
        await asyncio.to_thread(self.store.store, violations, workspace.id)

        run.files_processed = run.total_files
        run.violations_found = len(violations)
        return AnalysisResult(
            violations=violations,
            files_analyzed=run.files_processed,
            started_at=run.started_at,
            completed_at=utcnow(),
            config_hash=digest,
            incremental=False,
        )

    def _count_sources(self, workspace: Workspace) -> int:
        """Number of source files the tool is pointed at in a full run."""
        files = iter_source_files(
            workspace.path,
            extensions=self.config.normalized_extensions,
            excluded_directories=self.config.excluded_directories,
        )
        return sum(1 for _ in files)

    # ── batched run ───────────────────────────────────────────────

    async def _batched_run(
        self,
        run: _Run,
        files: Iterator[str],
        config_override: Optional[Path | str],
        only_changed: bool,
    ) -> AnalysisResult:
        workspace = run.workspace
        config_path = resolve_config_path(workspace, config_override, self.config.config_filename)
        digest = await asyncio.to_thread(config_hash, config_path)
        collected: list[Violation] = []
        batch_number = 0

        while True:
            self._raise_if_cancelled(run)
            batch = await asyncio.to_thread(self._next_batch, files, only_changed)
            if not batch:
                break
            batch_number += 1
            logger.debug("Batch %d: %d file(s)", batch_number, len(batch))

            violations = await self._lint_batch(workspace, config_path, batch)
            keys = [workspace_key(workspace, p) for p in batch]
            violations = filter_to_batch(violations, keys)
            await asyncio.to_thread(self.store.replace_files, violations, workspace.id, keys)
            await self._record_batch(batch)

            collected.extend(violations)
            run.files_processed += len(batch)
            run.violations_found += len(violations)
            run.current_file = batch[-1]
            self._publish(run, RunState.RUNNING)

        if batch_number == 0:
            logger.info("No changed files in %s; nothing to analyse", workspace.path)

        return AnalysisResult(
            violations=collected,
            files_analyzed=run.files_processed,
            started_at=run.started_at,
            completed_at=utcnow(),
            config_hash=digest,
            incremental=True,
        )

    def _next_batch(self, files: Iterator[str], only_changed: bool) -> list[str]:
        """Pull up to ``batch_size`` files (changed ones only, if asked)."""
        if only_changed:
            files = (p for p in files if self.tracker.has_changed(p))
        return take(files, self.config.batch_size)

    async def _lint_batch(
        self, workspace: Workspace, config_path: Optional[Path], batch: list[str]
    ) -> list[Violation]:
        async def lint_one(path: str) -> list[Violation]:
            raw = await self.adapter.run_lint(config_path, Path(path))
            return parse_violations(raw, workspace.path)

        tasks = [asyncio.ensure_future(lint_one(p)) for p in batch]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return [v for found in results for v in found]

    async def _record_batch(self, batch: list[str]) -> None:
        try:
            await asyncio.to_thread(self.tracker.record_analyzed_many, batch)
        except FileTrackingError as e:
            # the file will look changed next time and be re-analysed
            logger.warning("Could not record %s: %s", e.filepath, e.reason)


def _current_task_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0
