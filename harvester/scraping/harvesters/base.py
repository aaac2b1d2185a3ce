"""
Base harvester abstraction: optional pre-phase, then the shared harvest loop.
"""

from __future__ import annotations

import logging
import time
from abc import ABC
from collections.abc import Callable
from typing import ClassVar

from harvester.domain.harvest import HarvestResult, HarvestStatus, HarvestWarning
from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.config.models import HarvestSettings
from harvester.scraping.drivers.base import PageDriver
from harvester.scraping.engine import HarvestController
from harvester.scraping.errors import PageDriverError
from harvester.scraping.logging_utils import log_event
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.progress import LoggingProgressSink, ProgressSink

logger = logging.getLogger(__name__)


class HarvesterBase(ABC):
    """
    Thin configuration around HarvestController.

    Subclasses pick a schema and may override prepare() to act on the page
    before the region is probed.
    """

    kind: ClassVar[str]

    def __init__(
        self,
        *,
        settings: HarvestSettings,
        schema: ExtractionSchema,
        driver: PageDriver,
        cancellation: CancellationChannel | None = None,
        progress: ProgressSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if settings.kind != self.kind:
            raise ValueError(f"{type(self).__name__} expects '{self.kind}' settings, got '{settings.kind}'.")
        self.settings = settings
        self.schema = schema
        self.driver = driver
        self.cancellation = cancellation or CancellationChannel()
        self.progress = progress or LoggingProgressSink(kind=self.kind)
        self.sleep = sleep
        # Set by prepare() once known so a later pre-phase failure still reports it.
        self.subject_name: str | None = None

    def harvest(self) -> HarvestResult:
        """
        Run one session and return its terminal result.
        """

        session = self.settings.new_session()
        self.subject_name = None
        warnings: list[HarvestWarning] = []
        try:
            schema, subject_name = self.prepare(warnings)
        except PageDriverError as exc:
            log_event(
                logger,
                logging.ERROR,
                "harvest_prepare_failed",
                kind=self.kind,
                subject_name=self.subject_name,
                error=str(exc),
            )
            session.finish(HarvestStatus.FAILED)
            return HarvestResult(
                kind=self.kind,
                status=session.status,
                records=(),
                measurement=0,
                steps=0,
                subject_name=self.subject_name,
                warnings=tuple(warnings),
                error_code=exc.code,
                error_message=str(exc),
            )

        controller = HarvestController(
            schema=schema,
            driver=self.driver,
            cancellation=self.cancellation,
            progress=self.progress,
            sleep=self.sleep,
        )
        return controller.run(session, subject_name=subject_name, warnings=warnings)

    def prepare(self, warnings: list[HarvestWarning]) -> tuple[ExtractionSchema, str | None]:
        """
        Pre-phase hook. Returns the schema to harvest with and an optional subject name.
        """

        return self.schema, None
