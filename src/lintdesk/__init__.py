"""
lintdesk - Incremental lint analysis with a durable violation store

Runs an external lint tool over a workspace, keeps the latest findings in
SQLite and re-analyses only the files that changed since the last run.
"""

__version__ = "0.1.0"

from .analysis import AnalysisOrchestrator
from .config import LintdeskConfig, load_config
from .models import (
    AnalysisProgress,
    AnalysisResult,
    Rule,
    RunState,
    Severity,
    Violation,
    ViolationFilter,
    Workspace,
)
from .persistence import ViolationStore
from .tool import LintToolAdapter
from .tracking import ChangeTracker

__all__ = [
    "AnalysisOrchestrator",  # Main entry point
    "ChangeTracker",
    "LintToolAdapter",
    "ViolationStore",
    "LintdeskConfig",
    "load_config",
    "Workspace",
    "Violation",
    "ViolationFilter",
    "Severity",
    "Rule",
    "RunState",
    "AnalysisProgress",
    "AnalysisResult",
]
