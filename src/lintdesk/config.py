"""Configuration loading and management for lintdesk.

Configuration sources are merged in priority order:
    1. Defaults (defined in LintdeskConfig)
    2. Global config (~/.lintdesk.toml)
    3. Project config (./lintdesk.toml)
    4. Explicit config file
    5. Environment variables (LINTDESK_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(batch_size=20)
    >>> config.batch_size
    20
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

# Build artifacts, package manager caches and version-control metadata.
DEFAULT_EXCLUDED_DIRECTORIES: tuple[str, ...] = (
    ".build",
    "DerivedData",
    ".git",
    "Pods",
    "Carthage",
    ".swiftpm",
    "node_modules",
    "Build",
)

# Install locations searched when the tool is not on PATH.
DEFAULT_TOOL_SEARCH_PATHS: tuple[str, ...] = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
)


def default_data_dir() -> Path:
    """Per-user directory holding the violation database and fingerprint cache."""
    return Path.home() / ".lintdesk"


@dataclass(frozen=True)
class LintdeskConfig:
    """Settings for the analysis core.

    Attributes:
        External tool:
            tool_executable: Name or absolute path of the lint tool
            tool_search_paths: Extra directories searched for the tool
            tool_timeout_seconds: Wall-clock limit for one tool invocation
            detail_timeout_seconds: Limit for one rule-detail fetch
            enrichment_concurrency: Parallel rule-detail fetches

        Incremental analysis:
            batch_size: Files per incremental batch
            source_extensions: File suffixes considered source files
            excluded_directories: Directory names never descended into

        Workspace:
            config_filename: Lint configuration file at the workspace root

        Storage:
            data_dir: Directory for violations.db and the fingerprint cache

        Output control:
            verbosity: Logging verbosity level
    """

    tool_executable: str = "swiftlint"
    tool_search_paths: list[str] = field(default_factory=lambda: list(DEFAULT_TOOL_SEARCH_PATHS))
    tool_timeout_seconds: float = 300.0
    detail_timeout_seconds: float = 30.0
    enrichment_concurrency: int = 10

    batch_size: int = 10
    source_extensions: list[str] = field(default_factory=lambda: [".swift"])
    excluded_directories: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_DIRECTORIES)
    )

    config_filename: str = ".swiftlint.yml"

    data_dir: str = field(default_factory=lambda: str(default_data_dir()))

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.tool_executable:
            raise InvalidConfigError("tool_executable", self.tool_executable, "must not be empty")
        if self.tool_timeout_seconds <= 0:
            raise InvalidConfigError(
                "tool_timeout_seconds", self.tool_timeout_seconds, "must be positive"
            )
        if self.detail_timeout_seconds <= 0:
            raise InvalidConfigError(
                "detail_timeout_seconds", self.detail_timeout_seconds, "must be positive"
            )
        if self.enrichment_concurrency < 1:
            raise InvalidConfigError(
                "enrichment_concurrency", self.enrichment_concurrency, "must be at least 1"
            )
        if self.batch_size < 1:
            raise InvalidConfigError("batch_size", self.batch_size, "must be at least 1")
        if not self.source_extensions:
            raise InvalidConfigError("source_extensions", self.source_extensions, "must not be empty")
        for ext in self.source_extensions:
            if not ext.startswith("."):
                raise InvalidConfigError("source_extensions", ext, "extensions must start with '.'")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir).expanduser() / "violations.db"

    @property
    def tracker_cache_path(self) -> Path:
        return Path(self.data_dir).expanduser() / "file_tracker_cache.json"

    @property
    def normalized_extensions(self) -> frozenset[str]:
        return frozenset(ext.lower() for ext in self.source_extensions)


def merged_exclusions(existing: Optional[list[str]]) -> list[str]:
    """Append the default exclusions missing from ``existing``, keeping its order."""
    if not existing:
        return list(DEFAULT_EXCLUDED_DIRECTORIES)
    seen = set(existing)
    return list(existing) + [d for d in DEFAULT_EXCLUDED_DIRECTORIES if d not in seen]


def load_config(config_file: Optional[Path] = None, **overrides) -> LintdeskConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options do not mask file values.

    Returns:
        Validated LintdeskConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".lintdesk.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / "lintdesk.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"

    merged.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(merged) - set(LintdeskConfig.__dataclass_fields__))
    if unknown:
        raise InvalidConfigError(unknown[0], merged[unknown[0]], "unknown setting")

    try:
        return LintdeskConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from LINTDESK_* environment variables.

    List-valued settings accept comma-separated values, e.g.
    ``LINTDESK_SOURCE_EXTENSIONS=.swift,.m``.
    """
    type_hints = get_type_hints(LintdeskConfig)
    result: dict[str, Any] = {}

    for field_name in LintdeskConfig.__dataclass_fields__:
        env_key = f"LINTDESK_{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e)) from e
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type."""
    origin = getattr(type_hint, "__origin__", None)
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none = [t for t in args if t is not type(None)]
        if non_none:
            type_hint = non_none[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list:
        return [part.strip() for part in value.split(",") if part.strip()]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file; a top-level ``[lintdesk]`` table is unwrapped."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}") from e
    if isinstance(data.get("lintdesk"), dict):
        return dict(data["lintdesk"])
    return data
