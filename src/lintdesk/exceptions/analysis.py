"""Analysis-related exceptions: external tool, output, workspace, cancellation."""

from pathlib import Path
from typing import Optional

from .base import LintdeskError
from .taxonomy import ErrorKind


class ToolNotFoundError(LintdeskError):
    """Raised when the external lint tool cannot be located or launched."""

    kind = ErrorKind.TOOL_NOT_FOUND

    def __init__(self, executable: str, searched: Optional[list] = None):
        details = {"executable": executable}
        if searched:
            details["searched"] = ", ".join(str(p) for p in searched)
        super().__init__(f"Lint tool not found: {executable}", details=details)
        self.executable = executable
        self.searched = list(searched or [])


class ToolTimeoutError(LintdeskError):
    """Raised when a tool invocation exceeds its wall-clock budget."""

    kind = ErrorKind.TOOL_TIMEOUT

    def __init__(self, command: str, timeout_seconds: float):
        super().__init__(
            f"Lint tool timed out after {timeout_seconds:g} seconds",
            details={"command": command},
        )
        self.command = command
        self.timeout_seconds = timeout_seconds


class ToolExecutionError(LintdeskError):
    """Raised when the tool exits unsuccessfully without parseable output."""

    kind = ErrorKind.ANALYSIS_FAILED

    def __init__(self, command: str, returncode: Optional[int], stderr: str = ""):
        details = {"command": command}
        if returncode is not None:
            details["returncode"] = str(returncode)
        if stderr:
            details["stderr"] = stderr.strip()[:500]
        super().__init__("Lint tool execution failed", details=details)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class InvalidOutputError(LintdeskError):
    """Raised when tool output is non-empty but not the expected JSON shape."""

    kind = ErrorKind.INVALID_OUTPUT

    def __init__(self, reason: str, sample: str = ""):
        details = {"reason": reason}
        if sample:
            details["sample"] = sample[:120]
        super().__init__("Invalid lint tool output", details=details)
        self.reason = reason


class WorkspaceNotFoundError(LintdeskError):
    """Raised when a workspace root does not exist or is not a directory."""

    kind = ErrorKind.WORKSPACE_NOT_FOUND

    def __init__(self, path: Path):
        super().__init__(f"Workspace not found: {path}", details={"path": str(path)})
        self.path = path


class AnalysisFailedError(LintdeskError):
    """Catch-all for a failed run; the underlying error is kept as ``cause``."""

    kind = ErrorKind.ANALYSIS_FAILED

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        details = {"reason": reason}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(f"Analysis failed: {reason}", details=details)
        self.reason = reason
        self.cause = cause


class AnalysisCancelledError(LintdeskError):
    """Raised to the awaiting caller when its run was cancelled."""

    kind = ErrorKind.CANCELLED

    def __init__(self, files_processed: int = 0):
        super().__init__(
            "Analysis cancelled", details={"files_processed": str(files_processed)}
        )
        self.files_processed = files_processed
