"""Exception hierarchy for lintdesk."""

from .analysis import (
    AnalysisCancelledError,
    AnalysisFailedError,
    InvalidOutputError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    WorkspaceNotFoundError,
)
from .base import LintdeskError
from .config import ConfigurationError, InvalidConfigError
from .storage import FileTrackingError, IOFailureError, StorageError
from .taxonomy import ErrorKind

__all__ = [
    "ErrorKind",
    "LintdeskError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "ToolExecutionError",
    "InvalidOutputError",
    "WorkspaceNotFoundError",
    "AnalysisFailedError",
    "AnalysisCancelledError",
    "IOFailureError",
    "StorageError",
    "FileTrackingError",
    "ConfigurationError",
    "InvalidConfigError",
]
