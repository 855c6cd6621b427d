"""SQLite database holding the current violation snapshot of every workspace."""

import sqlite3
from pathlib import Path
from typing import Optional, Union

from ..exceptions import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1

MEMORY = ":memory:"


class ViolationDB:
    """Manages the ``violations.db`` SQLite database.

    Pass ``":memory:"`` for an ephemeral database (tests, one-shot runs).
    The connection runs in autocommit mode; callers open transactions
    explicitly with ``BEGIN`` so a failed batch can be rolled back whole.

    Usage::

        with ViolationDB("~/.lintdesk/violations.db") as db:
            db.conn.execute("SELECT COUNT(*) FROM violations")
    """

    def __init__(self, path: Union[str, Path] = MEMORY) -> None:
        self.path: str = path if path == MEMORY else str(Path(path).expanduser())
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def in_memory(self) -> bool:
        return self.path == MEMORY

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise StorageError("access", "database is not open", self.path)
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open the database and create the schema if needed.

        The parent directory of a file database must already exist.
        """
        if not self.in_memory:
            parent = Path(self.path).parent
            if not parent.is_dir():
                raise StorageError(
                    "open", f"database directory does not exist: {parent}", self.path
                )
        try:
            conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if not self.in_memory:
                conn.execute("PRAGMA journal_mode=WAL")
            self._conn = conn
            self._migrate()
        except sqlite3.Error as e:
            self.close()
            raise StorageError("open", str(e), self.path) from e
        logger.debug("Violation DB connected at %s", self.path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ViolationDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables and indexes."""
        c = self.conn

        c.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
            """
        )
        row = c.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            c.execute("INSERT INTO schema_version (version) VALUES (?)", (_SCHEMA_VERSION,))
        elif row["version"] > _SCHEMA_VERSION:
            raise sqlite3.DatabaseError(
                f"database schema v{row['version']} is newer than supported v{_SCHEMA_VERSION}"
            )

        # ── violations ───────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS violations (
                id                 TEXT    PRIMARY KEY,
                workspace_id       TEXT    NOT NULL,
                rule_id            TEXT    NOT NULL,
                file_path          TEXT    NOT NULL,
                line               INTEGER NOT NULL,
                column             INTEGER,
                severity           TEXT    NOT NULL,
                message            TEXT    NOT NULL,
                detected_at        REAL    NOT NULL,
                resolved_at        REAL,
                suppressed         INTEGER NOT NULL DEFAULT 0,
                suppression_reason TEXT,
                identity_key       TEXT    NOT NULL DEFAULT ''
            )
            """
        )

        # ── indexes ──────────────────────────────────────────────
        c.execute("CREATE INDEX IF NOT EXISTS idx_violations_workspace ON violations(workspace_id)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_violations_rule ON violations(rule_id)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_violations_file ON violations(file_path)")
        c.execute("CREATE INDEX IF NOT EXISTS idx_violations_detected ON violations(detected_at)")
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_violations_identity ON violations(identity_key)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_violations_workspace_rule "
            "ON violations(workspace_id, rule_id)"
        )
