"""Error taxonomy shared by every lintdesk exception.

Each exception class carries one ``ErrorKind`` so callers (the UI layer, the
CLI) can branch on the category of a failure without inspecting messages,
exit codes or database error strings.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Categories of failure surfaced past the store/orchestrator boundary."""

    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_TIMEOUT = "tool_timeout"
    INVALID_OUTPUT = "invalid_output"  # malformed / non-JSON payload
    IO_FAILURE = "io_failure"  # filesystem or database I/O
    ANALYSIS_FAILED = "analysis_failed"  # catch-all wrapping a cause
    WORKSPACE_NOT_FOUND = "workspace_not_found"
    CANCELLED = "cancelled"
    CONFIGURATION = "configuration"

    @property
    def recoverable(self) -> bool:
        """Whether retrying (after the user fixes something) can succeed."""
        return self not in (ErrorKind.INVALID_OUTPUT,)
