"""Fingerprint-based change tracking for incremental analysis.

A file counts as unchanged only when both its modification time and its size
match the fingerprint recorded after it was last analyzed. Anything that
prevents a comparison (no fingerprint yet, unreadable attributes) counts as
changed, so a file is re-analyzed rather than silently skipped.

Content is never hashed: a rewrite that keeps mtime and size identical goes
unnoticed. That is a known limitation of (mtime, size) identity.

Cache location: ``<data_dir>/file_tracker_cache.json``, a JSON object keyed
by absolute path::

    {"/abs/path/A.swift": {"fileSize": 120, "lastModified": 1735000000.25}}
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import FileTrackingError
from ..logging_config import get_logger
from ..models import FileFingerprint

logger = get_logger(__name__)


class ChangeTracker:
    """Tracks file fingerprints so unchanged files can be skipped.

    The tracker is the only writer of its cache file. All mutations hold an
    internal lock, so concurrent batches may record files safely.

    Usage::

        tracker = ChangeTracker(Path("~/.lintdesk/file_tracker_cache.json"))
        todo = tracker.changed_files(candidates)
        ...  # analyze todo
        tracker.record_analyzed_many(todo)
    """

    def __init__(self, cache_path: Optional[Path | str] = None):
        self._cache_path = Path(cache_path).expanduser() if cache_path is not None else None
        self._lock = threading.Lock()
        self._fingerprints: dict[str, FileFingerprint] = {}
        self._load_cache()

    @property
    def cache_path(self) -> Optional[Path]:
        return self._cache_path

    # ── queries ───────────────────────────────────────────────────

    def fingerprint(self, path: str) -> Optional[FileFingerprint]:
        """Return the recorded fingerprint for ``path``, if any."""
        with self._lock:
            return self._fingerprints.get(_key(path))

    def has_changed(self, path: str) -> bool:
        """True unless the file's current mtime and size match the record."""
        key = _key(path)
        with self._lock:
            recorded = self._fingerprints.get(key)
        if recorded is None:
            return True
        try:
            current = FileFingerprint.from_path(key)
        except OSError:
            return True
        return not recorded.matches(current)

    def changed_files(self, paths: Iterable[str]) -> list[str]:
        """Filter ``paths`` down to those that changed, preserving order."""
        return [p for p in paths if self.has_changed(p)]

    def tracked_paths(self) -> list[str]:
        with self._lock:
            return sorted(self._fingerprints)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fingerprints)

    # ── mutations ─────────────────────────────────────────────────

    def record_analyzed(self, path: str) -> None:
        """Record the current fingerprint of ``path``.

        Raises:
            FileTrackingError: If the file's attributes cannot be read.
        """
        self.record_analyzed_many([path])

    def record_analyzed_many(self, paths: Iterable[str]) -> None:
        """Record fingerprints for several files, writing the cache once.

        Every readable file is recorded even if another one fails; the first
        failure is raised after the cache has been saved.
        """
        recorded: list[FileFingerprint] = []
        failure: Optional[FileTrackingError] = None
        for path in paths:
            key = _key(path)
            try:
                recorded.append(FileFingerprint.from_path(key))
            except OSError as e:
                if failure is None:
                    failure = FileTrackingError(Path(key), e.strerror or str(e))

        if recorded:
            with self._lock:
                for fp in recorded:
                    self._fingerprints[fp.path] = fp
                self._save_cache_locked()

        if failure is not None:
            raise failure

    def untrack(self, path: str) -> None:
        """Forget ``path`` (e.g. after the file was deleted)."""
        with self._lock:
            if self._fingerprints.pop(_key(path), None) is not None:
                self._save_cache_locked()

    def clear(self) -> None:
        """Forget every file; the next incremental run re-analyzes everything."""
        with self._lock:
            self._fingerprints.clear()
            self._save_cache_locked()

    # ── cache file ────────────────────────────────────────────────

    def _load_cache(self) -> None:
        """Load the cache, dropping entries for files that no longer exist."""
        if self._cache_path is None or not self._cache_path.exists():
            return
        try:
            raw = json.loads(self._cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable file tracker cache %s: %s", self._cache_path, e)
            return
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed file tracker cache %s", self._cache_path)
            return

        loaded: dict[str, FileFingerprint] = {}
        for path, entry in raw.items():
            if not isinstance(entry, dict) or not os.path.exists(path):
                continue
            try:
                loaded[path] = FileFingerprint.from_json(path, entry)
            except (KeyError, TypeError, ValueError):
                continue

        pruned = len(raw) - len(loaded)
        if pruned:
            logger.debug("Pruned %d stale entries from file tracker cache", pruned)
        self._fingerprints = loaded

    def _save_cache_locked(self) -> None:
        """Rewrite the cache file. Failures are logged, never raised."""
        if self._cache_path is None:
            return
        payload = {path: fp.to_json() for path, fp in self._fingerprints.items()}
        tmp_name: Optional[str] = None
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".tracker-", suffix=".json", dir=str(self._cache_path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._cache_path)
            tmp_name = None
        except OSError as e:
            logger.warning("Failed to save file tracker cache %s: %s", self._cache_path, e)
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


def _key(path: str | os.PathLike) -> str:
    """Cache key: the absolute, normalized path (symlinks are not resolved)."""
    return os.path.abspath(os.fspath(path))
