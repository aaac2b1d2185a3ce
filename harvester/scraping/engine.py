"""
Incremental scroll-harvest engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from bs4 import BeautifulSoup

from harvester import failure_codes
from harvester.domain.harvest import (
    HarvestRecord,
    HarvestResult,
    HarvestSession,
    HarvestStatus,
    HarvestWarning,
)
from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.dedup import Deduplicator
from harvester.scraping.drivers.base import PageDriver, Region
from harvester.scraping.errors import (
    ExtractionCandidateError,
    PageDriverError,
    RegionNotFoundError,
)
from harvester.scraping.logging_utils import log_event
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.progress import LoggingProgressSink, ProgressSink
from harvester.scraping.stability import StepOutcome, classify

logger = logging.getLogger(__name__)


class HarvestController:
    """
    Owns one harvest loop: trigger loading, detect growth, decide when to stop.

    The loop is purely sequential. It only suspends during the two configured
    delays and only polls cancellation at the top of a step and right after
    the load-more wait. Whatever the exit path, a final extraction pass over
    all loaded content produces the result.
    """

    def __init__(
        self,
        *,
        schema: ExtractionSchema,
        driver: PageDriver,
        cancellation: CancellationChannel | None = None,
        progress: ProgressSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._schema = schema
        self._driver = driver
        self._cancellation = cancellation or CancellationChannel()
        self._progress = progress or LoggingProgressSink(kind=schema.kind)
        self._sleep = sleep
        self._last_reported = 0
        self._latest_snapshot: BeautifulSoup | None = None

    def run(
        self,
        session: HarvestSession,
        *,
        subject_name: str | None = None,
        warnings: Sequence[HarvestWarning] = (),
    ) -> HarvestResult:
        """
        Run the session to a terminal state and return its result.

        Never raises for page-level problems: a missing region or a driver
        failure is reported as HarvestStatus.FAILED.
        """

        collected_warnings = list(warnings)
        log_event(
            logger,
            logging.INFO,
            "harvest_started",
            kind=session.kind,
            cap=session.cap,
            no_change_limit=session.no_change_limit,
            max_steps=session.max_steps,
        )

        try:
            region = self._driver.locate(
                self._schema.region_selectors,
                containing=self._schema.region_must_contain,
            )
        except PageDriverError as exc:
            return self._fail(session, exc, subject_name, collected_warnings)
        if region is None:
            return self._fail(session, RegionNotFoundError(session.kind), subject_name, collected_warnings)

        try:
            session.measurement = self._schema.measure(self._snapshot(region))
            self._report(f"Scrolling to load {self._schema.item_label}", 0)
            self._loop(session, region)
        except PageDriverError as exc:
            log_event(
                logger,
                logging.ERROR,
                "harvest_driver_failed",
                kind=session.kind,
                step=session.step,
                error=str(exc),
            )
            session.finish(HarvestStatus.FAILED)
            # Whatever was loaded before the failure is still returned.
            return self._build_result(
                session,
                self._latest_snapshot,
                subject_name,
                collected_warnings,
                error=exc,
            )

        # Final pass over everything currently loaded, not just the last step.
        try:
            self._snapshot(region)
        except PageDriverError as exc:
            log_event(
                logger,
                logging.WARNING,
                "final_snapshot_failed",
                kind=session.kind,
                error=str(exc),
            )
        return self._build_result(session, self._latest_snapshot, subject_name, collected_warnings)

    def _snapshot(self, region: Region) -> BeautifulSoup:
        self._latest_snapshot = self._driver.snapshot(region)
        return self._latest_snapshot

    def _loop(self, session: HarvestSession, region: Region) -> None:
        while True:
            if self._stop_requested(session, checkpoint="step_start"):
                return

            session.measurement = self._schema.measure(self._snapshot(region))
            if session.measurement >= session.cap:
                self._report("Target reached", session.measurement)
                self._finish(session, HarvestStatus.CAPPED, reason="cap_reached")
                return

            previous = session.measurement
            session.step += 1
            self._driver.load_more(region, distance=self._schema.scroll_distance)
            self._sleep(session.scroll_delay_ms / 1000)

            if self._stop_requested(session, checkpoint="after_load"):
                return

            snapshot = self._snapshot(region)
            current = self._schema.measure(snapshot)
            session.measurement = current
            outcome = classify(previous, current)

            if outcome is StepOutcome.GREW:
                session.no_change_streak = 0
                log_event(
                    logger,
                    logging.INFO,
                    "harvest_step_grew",
                    kind=session.kind,
                    step=session.step,
                    previous=previous,
                    current=current,
                )
                self._report(f"Loading {self._schema.item_label}", current)
                self._sleep(session.stabilize_delay_ms / 1000)
            else:
                session.no_change_streak += 1
                log_event(
                    logger,
                    logging.DEBUG,
                    "harvest_step_no_change",
                    kind=session.kind,
                    step=session.step,
                    measurement=current,
                    streak=session.no_change_streak,
                    limit=session.no_change_limit,
                )
                if session.no_change_streak >= session.no_change_limit:
                    self._finish(session, HarvestStatus.CONVERGED, reason="no_change_limit")
                    return

            # An explicit end-of-list banner overrides the streak heuristic.
            if self._schema.end_marker_seen(snapshot):
                self._finish(session, HarvestStatus.END_MARKER_SEEN, reason="end_marker")
                return

            if session.step >= session.max_steps:
                self._finish(session, HarvestStatus.CAPPED, reason="max_steps")
                return

    def _stop_requested(self, session: HarvestSession, *, checkpoint: str) -> bool:
        if not self._cancellation.is_stopped():
            return False
        self._finish(session, HarvestStatus.CANCELLED, reason=checkpoint)
        return True

    def _finish(self, session: HarvestSession, status: HarvestStatus, *, reason: str) -> None:
        session.finish(status)
        log_event(
            logger,
            logging.INFO,
            "harvest_terminal",
            kind=session.kind,
            status=status.value,
            reason=reason,
            step=session.step,
            measurement=session.measurement,
        )

    def _report(self, phase: str, count: int) -> None:
        # Recycled nodes can shrink the raw count; progress never goes backwards.
        count = max(count, self._last_reported)
        self._last_reported = count
        self._progress.emit(phase, count)

    def _fail(
        self,
        session: HarvestSession,
        error: Exception,
        subject_name: str | None,
        warnings: list[HarvestWarning],
    ) -> HarvestResult:
        session.finish(HarvestStatus.FAILED)
        log_event(
            logger,
            logging.ERROR,
            "harvest_failed",
            kind=session.kind,
            error_code=getattr(error, "code", failure_codes.REGION_NOT_FOUND),
            error=str(error),
        )
        return self._build_result(session, None, subject_name, warnings, error=error)

    def _build_result(
        self,
        session: HarvestSession,
        snapshot: BeautifulSoup | None,
        subject_name: str | None,
        warnings: list[HarvestWarning],
        *,
        error: Exception | None = None,
    ) -> HarvestResult:
        records: tuple[HarvestRecord, ...] = ()
        if snapshot is not None:
            records = self._collect(session, snapshot, warnings)
            self._report(f"Processing {self._schema.item_label}", len(records))

        if error is None and not records:
            warnings.append(
                HarvestWarning(
                    code=failure_codes.EMPTY_RESULT,
                    message=f"No usable {self._schema.item_label} found in the {session.kind} region.",
                )
            )

        result = HarvestResult(
            kind=session.kind,
            status=session.status,
            records=records,
            measurement=session.measurement,
            steps=session.step,
            subject_name=subject_name,
            warnings=tuple(warnings),
            error_code=getattr(error, "code", None) if error is not None else None,
            error_message=str(error) if error is not None else None,
        )
        log_event(
            logger,
            logging.INFO,
            "harvest_completed",
            kind=result.kind,
            status=result.status.value,
            records=result.record_count,
            measurement=result.measurement,
            steps=result.steps,
            warnings=result.warning_codes,
        )
        return result

    def _collect(
        self,
        session: HarvestSession,
        snapshot: BeautifulSoup,
        warnings: list[HarvestWarning],
    ) -> tuple[HarvestRecord, ...]:
        deduplicator: Deduplicator[HarvestRecord] = Deduplicator(limit=session.cap)
        skipped = 0
        for item in self._schema.extract(snapshot):
            if isinstance(item, ExtractionCandidateError):
                skipped += 1
                log_event(
                    logger,
                    logging.WARNING,
                    "extraction_candidate_skipped",
                    kind=session.kind,
                    candidate=item.index,
                    error=item.reason,
                )
                continue
            deduplicator.add(item)
            if deduplicator.is_full:
                break

        if skipped:
            warnings.append(
                HarvestWarning(
                    code=failure_codes.EXTRACTION_CANDIDATE_ERROR,
                    message=f"Skipped {skipped} malformed {self._schema.item_label} candidate(s).",
                )
            )
        return deduplicator.records
