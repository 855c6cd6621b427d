"""Base exception for lintdesk."""

from typing import Any, Dict, Optional

from .taxonomy import ErrorKind


class LintdeskError(Exception):
    """Base exception for all lintdesk errors."""

    kind: ErrorKind = ErrorKind.ANALYSIS_FAILED

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_json(self) -> Dict[str, Any]:
        """Structured logging format."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.kind.recoverable,
        }
