"""Configuration exceptions: settings files, environment overrides."""

from typing import Any

from .base import LintdeskError
from .taxonomy import ErrorKind


class ConfigurationError(LintdeskError):
    """Base class for configuration-related errors."""

    kind = ErrorKind.CONFIGURATION


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
