"""External lint tool adapter."""

from .adapter import CommandRunner, LintToolAdapter, ProcessOutput

__all__ = ["CommandRunner", "LintToolAdapter", "ProcessOutput"]
