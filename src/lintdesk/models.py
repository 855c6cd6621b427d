"""Core data models: violations, filters, workspaces, rules and run results."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Two-valued severity reported by the lint tool."""

    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: object) -> "Severity":
        """Map a tool severity string case-insensitively; anything else is a warning."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.WARNING


class RunState(str, Enum):
    """Analysis run lifecycle: idle -> running -> terminal -> idle."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED)


def compute_identity_key(rule_id: str, file_path: str, line: int, message: str) -> str:
    """Return a stable SHA-256[:16] hex digest for a finding.

    Unlike ``Violation.id`` (fresh per run) this key is the same for the same
    rule, file, line and message across runs, so callers can follow one
    finding through successive snapshots.
    """
    raw = "|".join([rule_id, file_path, str(line), message])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


@dataclass
class Violation:
    """One finding from one analysis run."""

    rule_id: str
    file_path: str  # workspace-relative when inside the workspace
    line: int  # 1-based
    severity: Severity
    message: str
    column: Optional[int] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    workspace_id: Optional[str] = None
    detected_at: datetime = field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None
    suppressed: bool = False
    suppression_reason: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return compute_identity_key(self.rule_id, self.file_path, self.line, self.message)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass
class ViolationFilter:
    """Filter criteria for violation queries; every set constraint is ANDed.

    ``suppressed_only`` is tri-state: ``None`` places no constraint, ``True``
    keeps only suppressed violations, ``False`` only unsuppressed ones.
    ``detected_between`` is an inclusive ``(start, end)`` pair.
    """

    rule_ids: Optional[Sequence[str]] = None
    file_paths: Optional[Sequence[str]] = None
    severities: Optional[Sequence[Severity]] = None
    suppressed_only: Optional[bool] = None
    detected_between: Optional[tuple[datetime, datetime]] = None

    @classmethod
    def all(cls) -> "ViolationFilter":
        return cls()


@dataclass(frozen=True)
class FileFingerprint:
    """Cheap proxy for "file unchanged": modification time and size."""

    path: str  # absolute
    last_modified: float  # epoch seconds
    file_size: int

    @classmethod
    def from_path(cls, path: str) -> "FileFingerprint":
        """Stat ``path``; raises ``OSError`` when attributes cannot be read."""
        st = Path(path).stat()
        return cls(path=path, last_modified=st.st_mtime, file_size=st.st_size)

    def matches(self, other: "FileFingerprint") -> bool:
        return self.last_modified == other.last_modified and self.file_size == other.file_size

    def to_json(self) -> dict:
        return {"lastModified": self.last_modified, "fileSize": self.file_size}

    @classmethod
    def from_json(cls, path: str, data: dict) -> "FileFingerprint":
        return cls(
            path=path,
            last_modified=float(data["lastModified"]),
            file_size=int(data["fileSize"]),
        )


@dataclass
class Workspace:
    """A source tree under analysis, identified by a stable id."""

    path: Path
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    config_path: Optional[Path] = None
    last_analyzed: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser().resolve()
        if not self.name:
            self.name = self.path.name

    @classmethod
    def open(cls, path: Path | str, config_filename: str = ".swiftlint.yml") -> "Workspace":
        """Workspace whose id is derived from its absolute path.

        Repeated opens of the same directory address the same stored
        snapshot.
        """
        resolved = Path(path).expanduser().resolve()
        workspace_id = str(uuid.uuid5(uuid.NAMESPACE_URL, resolved.as_uri()))
        return cls(path=resolved, id=workspace_id, config_path=resolved / config_filename)


@dataclass(frozen=True)
class AnalysisProgress:
    """Snapshot of an in-flight (or just finished) analysis run."""

    state: RunState
    started_at: datetime
    current_file: Optional[str] = None
    files_processed: int = 0
    total_files: Optional[int] = None  # unknown for streamed incremental runs
    violations_found: int = 0
    is_complete: bool = False

    @property
    def fraction(self) -> float:
        if not self.total_files:
            return 0.0
        return min(1.0, self.files_processed / self.total_files)

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING


@dataclass
class AnalysisResult:
    """Outcome of one successful analysis run."""

    violations: list[Violation]
    files_analyzed: int
    started_at: datetime
    completed_at: datetime
    config_hash: Optional[str] = None
    incremental: bool = False

    @property
    def duration(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


class RuleCategory(str, Enum):
    STYLE = "style"
    LINT = "lint"
    METRICS = "metrics"
    PERFORMANCE = "performance"
    IDIOMATIC = "idiomatic"

    @classmethod
    def parse(cls, value: object) -> "RuleCategory":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.STYLE


@dataclass
class Rule:
    """A rule known to the lint tool."""

    id: str
    name: str
    category: RuleCategory = RuleCategory.STYLE
    is_opt_in: bool = False
    supports_autocorrection: bool = False
    description: str = ""
    documentation: Optional[str] = None
    enriched: bool = False
