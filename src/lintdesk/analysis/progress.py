"""Single-slot progress publication for analysis runs."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..logging_config import get_logger
from ..models import AnalysisProgress

logger = get_logger(__name__)

ProgressListener = Callable[[AnalysisProgress], None]


class ProgressSlot:
    """Holds the latest progress snapshot of the orchestrator.

    Each publish overwrites the previous value; nothing is queued, so a
    slow observer simply sees fewer intermediate states. Listeners are
    called synchronously on the publishing side with the new value.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._current: Optional[AnalysisProgress] = None
        self._listeners: list[ProgressListener] = []

    @property
    def current(self) -> Optional[AnalysisProgress]:
        with self._lock:
            return self._current

    def publish(self, progress: AnalysisProgress) -> None:
        with self._lock:
            self._current = progress
            # copy so listeners may unsubscribe themselves
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(progress)
            except Exception:
                logger.exception("Progress listener raised; ignoring")

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: ProgressListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
