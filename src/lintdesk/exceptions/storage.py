"""I/O exceptions: violation database and fingerprint cache."""

from pathlib import Path
from typing import Optional

from .base import LintdeskError
from .taxonomy import ErrorKind


class IOFailureError(LintdeskError):
    """Base class for filesystem and database I/O failures."""

    kind = ErrorKind.IO_FAILURE


class StorageError(IOFailureError):
    """Raised when the violation database cannot be opened, read or written."""

    def __init__(self, operation: str, reason: str, path: Optional[str] = None):
        details = {"operation": operation, "reason": reason}
        if path:
            details["path"] = path
        super().__init__(f"Violation storage failed during {operation}", details=details)
        self.operation = operation
        self.reason = reason


class FileTrackingError(IOFailureError):
    """Raised when a file's attributes cannot be read for fingerprinting."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot read file attributes: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason
