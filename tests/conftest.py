"""Shared test fixtures for lintdesk tests."""

import asyncio
import json
import os
from pathlib import Path

import pytest

from lintdesk.analysis import AnalysisOrchestrator
from lintdesk.config import LintdeskConfig
from lintdesk.models import Severity, Violation, Workspace
from lintdesk.persistence import ViolationStore
from lintdesk.tracking import ChangeTracker


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ── factories ─────────────────────────────────────────────────────


def make_violation(
    rule_id="force_cast",
    file_path="Sources/A.swift",
    line=1,
    severity=Severity.WARNING,
    message="Force casts should be avoided",
    **kwargs,
) -> Violation:
    return Violation(
        rule_id=rule_id,
        file_path=file_path,
        line=line,
        severity=severity,
        message=message,
        **kwargs,
    )


def write_sources(root: Path, names) -> list[str]:
    """Create small source files below ``root``; returns absolute paths."""
    paths = []
    for name in names:
        p = root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(f"// {name}\nlet x = 1\n")
        paths.append(str(p))
    return paths


class FakeLintAdapter:
    """Stands in for ``LintToolAdapter``: reports one finding per source file.

    ``findings`` maps absolute file paths to lists of finding dicts; files
    without an entry get a single ``trailing_newline`` warning. A directory
    target reports every ``.swift`` file below it.
    """

    def __init__(self, findings=None, error=None, delay=0.0):
        self.findings = findings or {}
        self.error = error
        self.delay = delay
        self.calls: list[tuple] = []

    async def run_lint(self, config_path, target):
        self.calls.append((config_path, Path(target)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        target = Path(target)
        if target.is_dir():
            files = sorted(
                os.path.join(d, f)
                for d, _, names in os.walk(target)
                for f in names
                if f.endswith(".swift")
            )
        else:
            files = [str(target)]
        records = []
        for f in files:
            for finding in self.findings.get(f, [self._default(f)]):
                records.append({"file": f, **finding})
        return json.dumps(records).encode()

    @staticmethod
    def _default(path):
        return {
            "line": 1,
            "character": 1,
            "rule_id": "trailing_newline",
            "severity": "Warning",
            "reason": f"Files should end with a single newline ({os.path.basename(path)})",
        }

    @property
    def linted_targets(self) -> list[Path]:
        return [target for _, target in self.calls]


# ── fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def workspace_dir(tmp_path):
    root = tmp_path / "App"
    root.mkdir()
    return root


@pytest.fixture
def workspace(workspace_dir):
    return Workspace.open(workspace_dir)


@pytest.fixture
def store():
    s = ViolationStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def tracker(tmp_path):
    return ChangeTracker(tmp_path / "data" / "file_tracker_cache.json")


@pytest.fixture
def fake_adapter():
    return FakeLintAdapter()


@pytest.fixture
def make_orchestrator(store, tracker, tmp_path):
    def _make(adapter, **config_overrides):
        config = LintdeskConfig(data_dir=str(tmp_path / "data"), **config_overrides)
        return AnalysisOrchestrator(adapter, store, tracker, config)

    return _make
