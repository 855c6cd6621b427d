"""Analysis runs: orchestration, source discovery and progress reporting."""

from .discovery import iter_source_files
from .orchestrator import AnalysisOrchestrator
from .progress import ProgressSlot

__all__ = ["AnalysisOrchestrator", "ProgressSlot", "iter_source_files"]
