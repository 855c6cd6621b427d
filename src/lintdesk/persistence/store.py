"""Durable violation snapshots with replace semantics.

The store keeps exactly one snapshot per workspace: ``store`` swaps the
whole snapshot, ``replace_files`` swaps the rows of specific files. There is
no diffing between runs here; each write replaces.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from ..exceptions import StorageError
from ..logging_config import get_logger
from ..models import Violation, ViolationFilter, utcnow
from .database import MEMORY, ViolationDB
from .queries import (
    COLUMNS,
    INSERT_SQL,
    ORDER_BY,
    build_filter_query,
    row_to_violation,
    to_epoch,
    violation_row,
)

logger = get_logger(__name__)

# SQLite's default host parameter limit is 999; stay well below it.
_CHUNK = 500


def _chunks(items: Sequence[str], size: int = _CHUNK) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ViolationStore:
    """Thread-safe access to the violation database.

    Every public method holds one re-entrant lock, so callers on any thread
    (or ``asyncio.to_thread`` workers) may share one instance.
    """

    def __init__(self, db_path: Union[str, Path, None] = None):
        self._db = ViolationDB(MEMORY if db_path is None else db_path)
        self._lock = threading.RLock()
        self._db.connect()

    @property
    def path(self) -> str:
        return self._db.path

    # ── lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "ViolationStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        conn = self._db.conn
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise StorageError(operation, str(e), self.path) from e
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise StorageError(operation, str(e), self.path) from e
        except BaseException:
            self._rollback(conn)
            raise

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    # ── writes ────────────────────────────────────────────────────

    def store(self, violations: Sequence[Violation], workspace_id: str) -> int:
        """Replace the workspace's snapshot with ``violations``.

        All-or-nothing: on any failure (including a duplicate id) the
        previous snapshot stays in place.
        """
        rows = [violation_row(v, workspace_id) for v in violations]
        with self._lock, self._transaction("store") as conn:
            deleted = conn.execute(
                "DELETE FROM violations WHERE workspace_id = ?", (workspace_id,)
            ).rowcount
            conn.executemany(INSERT_SQL, rows)
        for v in violations:
            v.workspace_id = workspace_id
        logger.info(
            "Stored %d violations for workspace %s (replaced %d)",
            len(rows),
            workspace_id,
            deleted,
        )
        return len(rows)

    def replace_files(
        self,
        violations: Sequence[Violation],
        workspace_id: str,
        file_paths: Sequence[str],
    ) -> int:
        """Replace only the rows belonging to ``file_paths``.

        ``violations`` must all belong to ``file_paths``; rows for other
        files of the workspace are left untouched.
        """
        paths = list(dict.fromkeys(file_paths))
        outside = {v.file_path for v in violations} - set(paths)
        if outside:
            raise ValueError(f"violations for files outside the batch: {sorted(outside)}")

        rows = [violation_row(v, workspace_id) for v in violations]
        with self._lock, self._transaction("replace_files") as conn:
            for chunk in _chunks(paths):
                placeholders = ", ".join("?" for _ in chunk)
                conn.execute(
                    f"DELETE FROM violations WHERE workspace_id = ? AND file_path IN ({placeholders})",
                    (workspace_id, *chunk),
                )
            conn.executemany(INSERT_SQL, rows)
        for v in violations:
            v.workspace_id = workspace_id
        logger.debug(
            "Replaced violations of %d file(s) in workspace %s with %d rows",
            len(paths),
            workspace_id,
            len(rows),
        )
        return len(rows)

    def suppress(self, ids: Sequence[str], reason: str) -> int:
        """Mark violations suppressed; unknown ids are ignored."""
        ids = list(ids)
        if not ids:
            return 0
        affected = 0
        with self._lock, self._transaction("suppress") as conn:
            for chunk in _chunks(ids):
                placeholders = ", ".join("?" for _ in chunk)
                affected += conn.execute(
                    f"UPDATE violations SET suppressed = 1, suppression_reason = ? "
                    f"WHERE id IN ({placeholders})",
                    (reason, *chunk),
                ).rowcount
        logger.debug("Suppressed %d of %d requested violations", affected, len(ids))
        return affected

    def resolve(self, ids: Sequence[str], at: Optional[datetime] = None) -> int:
        """Stamp ``resolved_at`` on violations; unknown ids are ignored."""
        ids = list(ids)
        if not ids:
            return 0
        stamp = to_epoch(at or utcnow())
        affected = 0
        with self._lock, self._transaction("resolve") as conn:
            for chunk in _chunks(ids):
                placeholders = ", ".join("?" for _ in chunk)
                affected += conn.execute(
                    f"UPDATE violations SET resolved_at = ? WHERE id IN ({placeholders})",
                    (stamp, *chunk),
                ).rowcount
        logger.debug("Resolved %d of %d requested violations", affected, len(ids))
        return affected

    def delete_all(self, workspace_id: str) -> int:
        with self._lock, self._transaction("delete_all") as conn:
            deleted = conn.execute(
                "DELETE FROM violations WHERE workspace_id = ?", (workspace_id,)
            ).rowcount
        logger.info("Deleted %d violations for workspace %s", deleted, workspace_id)
        return deleted

    # ── reads ─────────────────────────────────────────────────────

    def fetch(
        self,
        flt: Optional[ViolationFilter] = None,
        workspace_id: Optional[str] = None,
    ) -> list[Violation]:
        """Violations matching every set constraint, newest first."""
        query = build_filter_query(flt or ViolationFilter.all(), workspace_id)
        sql = f"SELECT {COLUMNS} FROM violations {query.where_clause} {ORDER_BY}"
        with self._lock:
            try:
                rows = self._db.conn.execute(sql, query.parameters).fetchall()
            except sqlite3.Error as e:
                raise StorageError("fetch", str(e), self.path) from e
        return [row_to_violation(r) for r in rows]

    def count(
        self,
        flt: Optional[ViolationFilter] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        query = build_filter_query(flt or ViolationFilter.all(), workspace_id)
        sql = f"SELECT COUNT(*) FROM violations {query.where_clause}"
        with self._lock:
            try:
                (total,) = self._db.conn.execute(sql, query.parameters).fetchone()
            except sqlite3.Error as e:
                raise StorageError("count", str(e), self.path) from e
        return total
