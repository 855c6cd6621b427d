"""Tests for the lint tool adapter: invocation, timeouts and output classification."""

import asyncio
import os
import stat
import sys
import time
from pathlib import Path

import pytest

from lintdesk.exceptions import ToolExecutionError, ToolNotFoundError, ToolTimeoutError
from lintdesk.tool import LintToolAdapter, ProcessOutput
from lintdesk.tool.adapter import classify_output
from lintdesk.tool.environment import build_environment, find_executable, lint_arguments


def runner_returning(output: ProcessOutput, calls=None):
    async def _runner(argv, env):
        if calls is not None:
            calls.append(list(argv))
        return output

    return _runner


class TestArguments:
    def test_lint_arguments_without_config(self, tmp_path):
        args = lint_arguments(None, tmp_path)
        assert args == ["lint", "--reporter", "json", str(tmp_path)]

    def test_config_is_passed_only_when_it_exists(self, tmp_path):
        missing = tmp_path / ".swiftlint.yml"
        assert "--config" not in lint_arguments(missing, tmp_path)

        missing.write_text("disabled_rules: []\n")
        args = lint_arguments(missing, tmp_path)
        assert args[3:5] == ["--config", str(missing)]

    def test_search_paths_are_prepended_to_path(self):
        env = build_environment({"PATH": "/usr/bin"}, ["/opt/homebrew/bin", "/usr/bin"])
        assert env["PATH"] == os.pathsep.join(["/opt/homebrew/bin", "/usr/bin"])

    def test_find_executable_in_search_paths(self, tmp_path):
        tool = tmp_path / "swiftlint"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(tool.stat().st_mode | stat.S_IEXEC)
        assert find_executable("swiftlint", [str(tmp_path)], env_path="") == str(tool)
        assert find_executable("swiftlint", [], env_path="") is None


class TestClassification:
    def test_stdout_is_the_payload(self):
        out = ProcessOutput(0, b"[]", b"")
        assert classify_output("cmd", "swiftlint", out) == b"[]"

    def test_nonzero_exit_with_output_keeps_payload(self):
        """Serious violations make the tool exit non-zero; the report still counts."""
        out = ProcessOutput(2, b'[{"file": "a"}]', b"")
        assert classify_output("cmd", "swiftlint", out) == b'[{"file": "a"}]'

    def test_empty_output_is_zero_findings(self):
        assert classify_output("cmd", "swiftlint", ProcessOutput(0, b"", b"")) == b""

    def test_nonzero_exit_without_output_fails(self):
        with pytest.raises(ToolExecutionError) as exc:
            classify_output("cmd", "swiftlint", ProcessOutput(1, b"", b"boom"))
        assert exc.value.returncode == 1

    def test_command_not_found_in_stderr(self):
        out = ProcessOutput(127, b"", b"sh: swiftlint: command not found")
        with pytest.raises(ToolNotFoundError):
            classify_output("cmd", "swiftlint", out)

    def test_fatal_stderr_fails(self):
        out = ProcessOutput(0, b"", b"error: could not read configuration")
        with pytest.raises(ToolExecutionError):
            classify_output("cmd", "swiftlint", out)

    def test_warnings_and_unknown_rules_are_not_fatal(self):
        noisy = b"warning: something\nerror: deprecated"
        unknown = b"error: 'foo' is not a valid rule identifier"
        assert classify_output("cmd", "swiftlint", ProcessOutput(0, b"", noisy)) == b""
        assert classify_output("cmd", "swiftlint", ProcessOutput(0, b"", unknown)) == b""


class TestAdapter:
    @pytest.mark.asyncio
    async def test_run_lint_builds_command(self, tmp_path):
        calls = []
        adapter = LintToolAdapter(runner=runner_returning(ProcessOutput(0, b"[]", b""), calls))
        assert await adapter.run_lint(None, tmp_path) == b"[]"
        assert calls == [["swiftlint", "lint", "--reporter", "json", str(tmp_path)]]

    @pytest.mark.asyncio
    async def test_rules_commands(self):
        calls = []
        adapter = LintToolAdapter(runner=runner_returning(ProcessOutput(0, b"x", b""), calls))
        await adapter.run_rules_list()
        await adapter.run_rule_detail("force_cast")
        assert calls[0][1:] == ["rules", "--format", "json"]
        assert calls[1][1:] == ["rules", "force_cast"]

    @pytest.mark.asyncio
    async def test_timeout_raises_tool_timeout(self, tmp_path):
        async def hang(argv, env):
            await asyncio.sleep(60)

        adapter = LintToolAdapter(timeout_seconds=0.05, runner=hang)
        with pytest.raises(ToolTimeoutError) as exc:
            await adapter.run_lint(None, tmp_path)
        assert exc.value.timeout_seconds == 0.05

    @pytest.mark.asyncio
    async def test_runner_file_not_found_is_tool_not_found(self, tmp_path):
        async def missing(argv, env):
            raise FileNotFoundError(argv[0])

        adapter = LintToolAdapter(runner=missing)
        with pytest.raises(ToolNotFoundError):
            await adapter.run_lint(None, tmp_path)

    @pytest.mark.asyncio
    async def test_missing_executable_is_tool_not_found(self, tmp_path):
        adapter = LintToolAdapter(
            executable="definitely-not-a-lint-tool",
            search_paths=[str(tmp_path)],
            environ={"PATH": str(tmp_path)},
        )
        with pytest.raises(ToolNotFoundError) as exc:
            await adapter.run_lint(None, tmp_path)
        assert exc.value.executable == "definitely-not-a-lint-tool"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            LintToolAdapter(timeout_seconds=0)


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")
class TestRealSubprocess:
    def _script(self, tmp_path: Path, body: str) -> Path:
        script = tmp_path / "fake-lint"
        script.write_text("#!/bin/sh\n" + body)
        script.chmod(script.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
        return script

    @pytest.mark.asyncio
    async def test_stdout_of_real_process(self, tmp_path):
        script = self._script(tmp_path, "echo '[]'\n")
        adapter = LintToolAdapter(executable=str(script))
        assert (await adapter.run_lint(None, tmp_path)).strip() == b"[]"

    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_timeout_kills_the_child(self, tmp_path):
        marker = tmp_path / "finished"
        script = self._script(tmp_path, f"sleep 5\ntouch {marker}\n")
        adapter = LintToolAdapter(executable=str(script), timeout_seconds=0.5)

        start = time.monotonic()
        with pytest.raises(ToolTimeoutError):
            await adapter.run_lint(None, tmp_path)
        assert time.monotonic() - start < 4

        await asyncio.sleep(5.5)
        assert not marker.exists()
