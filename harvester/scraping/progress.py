"""
Progress sinks receiving ordered (phase, count) events from a harvest loop.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque

from harvester.domain.harvest import ProgressEvent
from harvester.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """
    Fire-and-forget receiver of progress events.

    Implementations must not reorder or drop events; the loop emits them in
    the order it observed them.
    """

    @abstractmethod
    def emit(self, phase: str, count: int) -> None:
        """
        Receive one progress event.
        """


class LoggingProgressSink(ProgressSink):
    """
    Mirror progress events into the structured log.
    """

    def __init__(self, *, kind: str = "") -> None:
        self._kind = kind

    def emit(self, phase: str, count: int) -> None:
        log_event(logger, logging.INFO, "harvest_progress", kind=self._kind, phase=phase, count=count)


class BufferedProgressSink(ProgressSink):
    """
    Thread-safe in-memory buffer so another thread can poll progress.
    """

    def __init__(self, *, kind: str = "", max_events: int = 1000) -> None:
        self._kind = kind
        self._events: deque[ProgressEvent] = deque(maxlen=max(1, max_events))
        self._lock = threading.Lock()

    def emit(self, phase: str, count: int) -> None:
        with self._lock:
            self._events.append(ProgressEvent(phase=phase, count=count, kind=self._kind))

    def events(self) -> list[ProgressEvent]:
        with self._lock:
            return list(self._events)

    def latest(self) -> ProgressEvent | None:
        with self._lock:
            return self._events[-1] if self._events else None


class FanOutProgressSink(ProgressSink):
    """
    Forward each event to several sinks in order.
    """

    def __init__(self, *sinks: ProgressSink) -> None:
        self._sinks = sinks

    def emit(self, phase: str, count: int) -> None:
        for sink in self._sinks:
            sink.emit(phase, count)
