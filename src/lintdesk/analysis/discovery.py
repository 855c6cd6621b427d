"""Enumerate analysable source files below a workspace root.

Enumeration is lazy: callers pull paths as they need them, so very large
trees are never materialized into one list.
"""

from __future__ import annotations

import os
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator

from ..config import DEFAULT_EXCLUDED_DIRECTORIES

DEFAULT_SOURCE_EXTENSIONS = frozenset({".swift"})


def iter_source_files(
    root: Path | str,
    extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
    excluded_directories: Iterable[str] = DEFAULT_EXCLUDED_DIRECTORIES,
) -> Iterator[str]:
    """Yield absolute paths of source files below ``root``.

    Directories named in ``excluded_directories`` and hidden directories
    are pruned, hidden files are skipped, and only files whose suffix is in
    ``extensions`` (case-insensitive) are yielded. Order is deterministic.
    """
    allowed = {e.lower() if e.startswith(".") else "." + e.lower() for e in extensions}
    excluded = set(excluded_directories)

    for dirpath, dirnames, filenames in os.walk(os.fspath(root)):
        # prune in place so os.walk never descends
        dirnames[:] = sorted(d for d in dirnames if d not in excluded and not d.startswith("."))
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if os.path.splitext(name)[1].lower() in allowed:
                yield os.path.join(dirpath, name)


def take(iterator: Iterator[str], count: int) -> list[str]:
    """Pull at most ``count`` items from ``iterator``."""
    return list(islice(iterator, count))

