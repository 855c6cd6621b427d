"""Convert the lint tool's JSON report into ``Violation`` records.

The reporter emits a JSON array of objects::

    [{"file": "/ws/Sources/A.swift", "line": 12, "character": 5,
      "rule_id": "force_cast", "severity": "Error",
      "reason": "Force casts should be avoided"}]

Parsing is tolerant at the record level: a record missing a required field
is dropped without aborting the batch. The payload as a whole must still be
valid JSON; anything else raises ``InvalidOutputError``.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..exceptions import InvalidOutputError
from ..logging_config import get_logger
from ..models import Severity, Violation, utcnow

logger = get_logger(__name__)


def parse_violations(
    raw: bytes | str,
    workspace_root: Path | str,
    detected_at: Optional[datetime] = None,
) -> list[Violation]:
    """Parse a JSON report into violations with workspace-relative paths.

    Args:
        raw: The tool's stdout.
        workspace_root: Root used to relativize absolute file paths.
        detected_at: Timestamp shared by the whole batch (defaults to now).

    Raises:
        InvalidOutputError: If a non-empty payload is not a JSON array.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text.strip():
        return []

    try:
        records = json.loads(text)
    except ValueError as e:
        raise InvalidOutputError(f"not valid JSON: {e.__class__.__name__}", text.strip()) from e
    if not isinstance(records, list):
        raise InvalidOutputError(f"expected a JSON array, got {type(records).__name__}")

    root = os.path.normpath(os.fspath(workspace_root))
    stamp = detected_at or utcnow()
    violations: list[Violation] = []
    dropped = 0

    for record in records:
        violation = _parse_record(record, root, stamp)
        if violation is None:
            dropped += 1
            continue
        violations.append(violation)

    if dropped:
        logger.debug("Dropped %d malformed record(s) of %d", dropped, len(records))
    return violations


def _parse_record(record: Any, root: str, stamp: datetime) -> Optional[Violation]:
    if not isinstance(record, dict):
        return None

    file_path = record.get("file")
    line = record.get("line")
    rule_id = _first_str(record, "rule_id", "type")
    severity = record.get("severity")
    message = _first_str(record, "reason", "message")

    if not isinstance(file_path, str) or not file_path:
        return None
    if not _is_int(line):
        return None
    if rule_id is None or not isinstance(severity, str) or message is None:
        return None

    column = record.get("character")
    return Violation(
        rule_id=rule_id,
        file_path=relativize(file_path, root),
        line=line,
        column=column if _is_int(column) else None,
        severity=Severity.parse(severity),
        message=message,
        detected_at=stamp,
    )


def relativize(file_path: str, workspace_root: str) -> str:
    """Strip the workspace root prefix; paths outside it pass through unchanged."""
    if not os.path.isabs(file_path):
        return file_path
    root = os.path.normpath(workspace_root)
    normalized = os.path.normpath(file_path)
    if normalized == root:
        return file_path
    prefix = root if root.endswith(os.sep) else root + os.sep
    if normalized.startswith(prefix):
        return normalized[len(prefix):]
    return file_path


def _first_str(record: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
