"""
Cooperative stop flag shared between a harvest loop and its caller.
"""

from __future__ import annotations

import logging
import threading

from harvester.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


class CancellationChannel:
    """
    Level-triggered stop signal.

    signal_stop() may be called from any thread, any number of times. Once set
    the flag is never cleared; create a new channel for the next session.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def signal_stop(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        log_event(logger, logging.INFO, "harvest_stop_requested")

    def is_stopped(self) -> bool:
        return self._event.is_set()
