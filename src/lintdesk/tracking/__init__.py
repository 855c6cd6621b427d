"""Change tracking: which files changed since they were last analyzed."""

from .tracker import ChangeTracker

__all__ = ["ChangeTracker"]
