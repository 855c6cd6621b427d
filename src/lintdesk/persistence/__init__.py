"""SQLite persistence for violation snapshots."""

from .database import ViolationDB
from .queries import FilterQuery, build_filter_query
from .store import ViolationStore

__all__ = ["ViolationDB", "ViolationStore", "FilterQuery", "build_filter_query"]
