"""SQL building blocks for the violations table.

Filters become a parameterized ``WHERE`` clause; every constraint that is
set is ANDed with the others.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import Severity, Violation, ViolationFilter

COLUMNS = (
    "id, workspace_id, rule_id, file_path, line, column, severity, message, "
    "detected_at, resolved_at, suppressed, suppression_reason, identity_key"
)

INSERT_SQL = f"INSERT INTO violations ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"

ORDER_BY = "ORDER BY detected_at DESC, file_path ASC, line ASC"


@dataclass(frozen=True)
class FilterQuery:
    where_clause: str
    parameters: tuple


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def build_filter_query(flt: ViolationFilter, workspace_id: Optional[str] = None) -> FilterQuery:
    """Translate a filter (plus optional workspace scope) into SQL."""
    conditions: list[str] = []
    params: list[Any] = []

    if workspace_id is not None:
        conditions.append("workspace_id = ?")
        params.append(workspace_id)

    if flt.rule_ids:
        conditions.append(f"rule_id IN ({_placeholders(len(flt.rule_ids))})")
        params.extend(flt.rule_ids)

    if flt.file_paths:
        conditions.append(f"file_path IN ({_placeholders(len(flt.file_paths))})")
        params.extend(flt.file_paths)

    if flt.severities:
        conditions.append(f"severity IN ({_placeholders(len(flt.severities))})")
        params.extend(Severity(s).value for s in flt.severities)

    if flt.suppressed_only is not None:
        conditions.append("suppressed = ?")
        params.append(1 if flt.suppressed_only else 0)

    if flt.detected_between is not None:
        start, end = flt.detected_between
        conditions.append("detected_at >= ? AND detected_at <= ?")
        params.extend([to_epoch(start), to_epoch(end)])

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    return FilterQuery(where_clause=where, parameters=tuple(params))


def to_epoch(value: datetime) -> float:
    """Seconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def from_epoch(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def violation_row(violation: Violation, workspace_id: str) -> tuple:
    return (
        violation.id,
        workspace_id,
        violation.rule_id,
        violation.file_path,
        violation.line,
        violation.column,
        Severity(violation.severity).value,
        violation.message,
        to_epoch(violation.detected_at),
        to_epoch(violation.resolved_at) if violation.resolved_at else None,
        1 if violation.suppressed else 0,
        violation.suppression_reason,
        violation.identity_key,
    )


def row_to_violation(row: sqlite3.Row) -> Violation:
    return Violation(
        id=row["id"],
        workspace_id=row["workspace_id"],
        rule_id=row["rule_id"],
        file_path=row["file_path"],
        line=row["line"],
        column=row["column"],
        severity=Severity.parse(row["severity"]),
        message=row["message"],
        detected_at=from_epoch(row["detected_at"]),
        resolved_at=from_epoch(row["resolved_at"]),
        suppressed=bool(row["suppressed"]),
        suppression_reason=row["suppression_reason"],
    )
