"""Small pure helpers shared by the analysis runs."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Iterable, Optional

from ..models import Violation, Workspace
from ..parsing import relativize


def resolve_config_path(
    workspace: Workspace,
    override: Optional[Path | str] = None,
    config_filename: str = ".swiftlint.yml",
) -> Optional[Path]:
    """Pick the lint configuration for a run.

    Order: explicit override, the workspace's own config path, then
    ``config_filename`` at the workspace root. Only existing files count;
    ``None`` means the tool runs with its defaults.
    """
    candidates: list[Path] = []
    if override is not None:
        candidates.append(_anchor(workspace, override))
    if workspace.config_path is not None:
        candidates.append(_anchor(workspace, workspace.config_path))
    candidates.append(workspace.path / config_filename)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def config_hash(config_path: Optional[Path]) -> Optional[str]:
    """SHA-256 hex digest of the config file contents (None without a file)."""
    if config_path is None:
        return None
    try:
        data = Path(config_path).read_bytes()
    except OSError:
        return None
    return hashlib.sha256(data).hexdigest()


def workspace_key(workspace: Workspace, path: str) -> str:
    """The stored ``file_path`` form of an absolute source path."""
    return relativize(path, str(workspace.path))


def absolute_paths(workspace: Workspace, paths: Iterable[Path | str]) -> list[str]:
    """Anchor relative paths at the workspace root; duplicates collapse."""
    seen: dict[str, None] = {}
    for p in paths:
        seen[os.path.normpath(str(_anchor(workspace, p)))] = None
    return list(seen)


def filter_to_batch(violations: Iterable[Violation], keys: Iterable[str]) -> list[Violation]:
    allowed = set(keys)
    return [v for v in violations if v.file_path in allowed]


def _anchor(workspace: Workspace, path: Path | str) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else workspace.path / p
