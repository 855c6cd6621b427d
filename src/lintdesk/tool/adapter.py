"""Run the external lint tool as a subprocess and classify its outcome.

Every invocation is bounded by a wall-clock timeout. On timeout the child is
killed and reaped before ``ToolTimeoutError`` is raised, so a hung tool never
blocks a caller indefinitely.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from ..config import DEFAULT_TOOL_SEARCH_PATHS
from ..exceptions import ToolExecutionError, ToolNotFoundError, ToolTimeoutError
from ..logging_config import get_logger
from .environment import (
    build_environment,
    find_executable,
    format_command,
    lint_arguments,
    rule_detail_arguments,
    rules_arguments,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessOutput:
    """Raw result of one child process."""

    returncode: Optional[int]
    stdout: bytes
    stderr: bytes


# (argv, env) -> ProcessOutput. Raises FileNotFoundError when argv[0] cannot
# be executed. Cancellation must terminate the child.
CommandRunner = Callable[[Sequence[str], Mapping[str, str]], Awaitable[ProcessOutput]]


async def run_subprocess(argv: Sequence[str], env: Mapping[str, str]) -> ProcessOutput:
    """Default runner: ``asyncio`` subprocess with captured output."""
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env),
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
        raise
    return ProcessOutput(returncode=proc.returncode, stdout=stdout, stderr=stderr)


class LintToolAdapter:
    """Invokes the lint tool and returns its stdout payload.

    Failures are typed: ``ToolNotFoundError`` when the binary is missing,
    ``ToolTimeoutError`` when the time budget is exceeded and
    ``ToolExecutionError`` for an unsuccessful exit without output. Empty
    output from a successful run is a valid "no findings" payload.
    """

    def __init__(
        self,
        executable: str = "swiftlint",
        timeout_seconds: float = 300.0,
        search_paths: Sequence[str] = DEFAULT_TOOL_SEARCH_PATHS,
        runner: Optional[CommandRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self.search_paths = list(search_paths)
        self._runner = runner
        self._env = build_environment(environ if environ is not None else os.environ, self.search_paths)
        self._resolved: Optional[str] = None

    @classmethod
    def from_config(cls, config, runner: Optional[CommandRunner] = None) -> "LintToolAdapter":
        return cls(
            executable=config.tool_executable,
            timeout_seconds=config.tool_timeout_seconds,
            search_paths=config.tool_search_paths,
            runner=runner,
        )

    # ── commands ──────────────────────────────────────────────────

    async def run_lint(
        self,
        config_path: Optional[Path],
        target: Path,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Lint ``target`` (a workspace directory or a single file)."""
        return await self._execute(lint_arguments(config_path, target), timeout)

    async def run_rules_list(self, timeout: Optional[float] = None) -> bytes:
        return await self._execute(rules_arguments(), timeout)

    async def run_rule_detail(self, rule_id: str, timeout: Optional[float] = None) -> bytes:
        return await self._execute(rule_detail_arguments(rule_id), timeout)

    async def version(self) -> str:
        return (await self._execute(["version"], None)).decode("utf-8", errors="replace").strip()

    # ── execution ─────────────────────────────────────────────────

    def resolve_executable(self) -> str:
        """Absolute path of the tool, cached while it keeps existing."""
        if self._resolved is not None and os.path.isfile(self._resolved):
            return self._resolved
        self._resolved = None

        found = find_executable(self.executable, self.search_paths, self._env.get("PATH"))
        if found is None:
            raise ToolNotFoundError(self.executable, self.search_paths)
        self._resolved = found
        logger.debug("Using lint tool at %s", found)
        return found

    async def _execute(self, arguments: list[str], timeout: Optional[float]) -> bytes:
        budget = timeout if timeout is not None else self.timeout_seconds
        if self._runner is not None:
            argv = [self.executable, *arguments]
            runner = self._runner
        else:
            argv = [self.resolve_executable(), *arguments]
            runner = run_subprocess
        command = format_command(argv)
        logger.debug("Running %s", command)

        try:
            output = await asyncio.wait_for(runner(argv, self._env), timeout=budget)
        except asyncio.TimeoutError as e:
            logger.warning("Timed out after %gs: %s", budget, command)
            raise ToolTimeoutError(command, budget) from e
        except FileNotFoundError as e:
            self._resolved = None
            raise ToolNotFoundError(self.executable, self.search_paths) from e
        except PermissionError as e:
            raise ToolExecutionError(command, None, str(e)) from e

        logger.debug(
            "%s exited with %s (%d bytes stdout)", argv[0], output.returncode, len(output.stdout)
        )
        return classify_output(command, self.executable, output)


def classify_output(command: str, executable: str, output: ProcessOutput) -> bytes:
    """Return the payload of ``output`` or raise the matching typed error."""
    stderr = output.stderr.decode("utf-8", errors="replace")
    lowered = stderr.lower()

    if "command not found" in lowered:
        raise ToolNotFoundError(executable)

    if output.stdout.strip():
        if output.returncode not in (0, None):
            # the tool exits non-zero when it reports serious violations
            logger.debug("Non-zero exit %s with output; keeping payload", output.returncode)
        return output.stdout

    if output.returncode not in (0, None):
        raise ToolExecutionError(command, output.returncode, stderr)

    if _is_fatal_stderr(lowered):
        raise ToolExecutionError(command, output.returncode, stderr)

    return b""


def _is_fatal_stderr(lowered: str) -> bool:
    return (
        "error:" in lowered
        and "warning:" not in lowered
        and "is not a valid rule identifier" not in lowered
    )
