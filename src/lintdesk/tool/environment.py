"""Command-line construction and executable lookup for the lint tool."""

from __future__ import annotations

import os
import shlex
import shutil
from pathlib import Path
from typing import Mapping, Optional, Sequence


def build_environment(base: Mapping[str, str], search_paths: Sequence[str]) -> dict[str, str]:
    """Copy ``base`` with ``search_paths`` prepended to PATH where missing."""
    env = dict(base)
    current = env.get("PATH")
    if current is None:
        env["PATH"] = os.pathsep.join([*search_paths, "/bin"])
        return env
    present = current.split(os.pathsep)
    missing = [p for p in search_paths if p not in present]
    if missing:
        env["PATH"] = os.pathsep.join([*missing, current])
    return env


def find_executable(
    executable: str, search_paths: Sequence[str], env_path: Optional[str] = None
) -> Optional[str]:
    """Locate the tool: explicit path, then PATH, then well-known install dirs."""
    if os.sep in executable:
        candidate = Path(executable).expanduser()
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        return None

    found = shutil.which(executable, path=env_path)
    if found:
        return found

    for directory in search_paths:
        candidate = Path(directory) / executable
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


def lint_arguments(config_path: Optional[Path], target: Path) -> list[str]:
    """``lint --reporter json [--config <path>] <target>``.

    ``--config`` is only passed for a configuration file that exists.
    """
    args = ["lint", "--reporter", "json"]
    if config_path is not None and Path(config_path).is_file():
        args.extend(["--config", str(config_path)])
    args.append(str(target))
    return args


def rules_arguments() -> list[str]:
    return ["rules", "--format", "json"]


def rule_detail_arguments(rule_id: str) -> list[str]:
    return ["rules", rule_id]


def format_command(argv: Sequence[str]) -> str:
    """Shell-quoted rendering of ``argv`` for logs and error details."""
    return " ".join(shlex.quote(part) for part in argv)
