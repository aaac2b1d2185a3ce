"""
harvester/services/harvest_service.py

Runs one harvest session at a time in the background and exposes its state.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from harvester import failure_codes
from harvester.config import HarvestOutputSettings, get_browser_settings, get_output_settings
from harvester.domain.harvest import HarvestResult, HarvestStatus
from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.config import (
    get_harvest_settings,
    get_locator_config_path,
    load_locator_overrides,
)
from harvester.scraping.config.models import HarvestSettings
from harvester.scraping.drivers.base import PageDriver
from harvester.scraping.errors import PageDriverError
from harvester.scraping.logging_utils import log_event
from harvester.scraping.progress import BufferedProgressSink, FanOutProgressSink, LoggingProgressSink
from harvester.scraping.registry import HarvesterRegistry
from harvester.scraping.storage import CsvRecordStorage, RecordStorage, SQLAlchemyRecordStorage

logger = logging.getLogger(__name__)

DriverFactory = Callable[[str], AbstractContextManager[PageDriver]]


class HarvestInProgressError(RuntimeError):
    """
    A harvest is already running; only one session may be active at a time.
    """


class HarvestTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class ThreadTaskExecutor:
    """
    Run each task on its own daemon thread.

    Playwright's sync API binds to the thread that started it, so the job
    opens its browser inside the worker thread.
    """

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        thread = threading.Thread(target=task, args=args, kwargs=kwargs, name="harvest-job", daemon=True)
        thread.start()


class JobState:
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"


@dataclass
class HarvestJob:
    """
    One submitted harvest and its live state.
    """

    kind: str
    url: str
    settings: HarvestSettings
    job_id: uuid.UUID = field(default_factory=uuid.uuid4)
    cancellation: CancellationChannel = field(default_factory=CancellationChannel)
    progress: BufferedProgressSink = field(default_factory=BufferedProgressSink)
    state: str = JobState.RUNNING
    result: HarvestResult | None = None
    error_message: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def is_running(self) -> bool:
        return self.state == JobState.RUNNING

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def complete(self, *, result: HarvestResult | None = None, error_message: str | None = None) -> None:
        self.result = result
        self.error_message = error_message
        self.completed_at = datetime.now(timezone.utc)
        self.state = JobState.ERROR if error_message is not None else JobState.FINISHED
        self._done.set()


def _open_browser_driver(url: str) -> AbstractContextManager[PageDriver]:
    from harvester.scraping.drivers.playwright_driver import open_playwright_driver

    return open_playwright_driver(url, settings=get_browser_settings())


class HarvestService:
    """
    Starts, stops and reports on the single active harvest session.
    """

    def __init__(
        self,
        *,
        registry: HarvesterRegistry | None = None,
        driver_factory: DriverFactory | None = None,
        executor: HarvestTaskExecutor | None = None,
        output_settings: HarvestOutputSettings | None = None,
        locator_overrides: dict[str, dict[str, list[object]]] | None = None,
        session_factory: Callable[[], Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry or HarvesterRegistry()
        self._driver_factory = driver_factory or _open_browser_driver
        self._executor = executor or ThreadTaskExecutor()
        self._output_settings = output_settings or get_output_settings()
        if locator_overrides is None:
            locator_overrides = load_locator_overrides(config_path=get_locator_config_path())
        self._locator_overrides = locator_overrides
        self._session_factory = session_factory
        self._sleep = sleep
        self._lock = threading.Lock()
        self._current: HarvestJob | None = None

    def start(
        self,
        kind: str,
        *,
        url: str,
        cap: int | None = None,
        speed: str | None = None,
        sort_order: str | None = None,
    ) -> HarvestJob:
        """
        Submit a new session. Raises ValueError on bad input and
        HarvestInProgressError while another session is running.
        """

        if not url or not url.strip():
            raise ValueError("A page URL is required.")
        settings = get_harvest_settings(kind)
        if speed is not None:
            settings = settings.with_speed(speed)
        settings = settings.with_overrides(cap=cap, sort_order=sort_order)

        with self._lock:
            if self._current is not None and self._current.is_running:
                raise HarvestInProgressError(
                    f"A {self._current.kind} harvest is already running (job_id={self._current.job_id})."
                )
            job = HarvestJob(
                kind=settings.kind,
                url=url.strip(),
                settings=settings,
                progress=BufferedProgressSink(kind=settings.kind),
            )
            self._current = job

        log_event(logger, logging.INFO, "harvest_job_submitted", job_id=job.job_id, kind=job.kind, url=job.url)
        self._executor.submit(self._run_job, job)
        return job

    def stop(self) -> HarvestJob | None:
        """
        Signal the running session to stop. Returns the job, or None when idle.
        """

        with self._lock:
            job = self._current
        if job is None or not job.is_running:
            return None
        job.cancellation.signal_stop()
        return job

    def current(self) -> HarvestJob | None:
        with self._lock:
            return self._current

    def _run_job(self, job: HarvestJob) -> None:
        try:
            result = self._harvest(job)
            self._store(result)
        except Exception as exc:
            error_message = f"{type(exc).__name__}: {exc}"
            logger.exception("Harvest job failed id=%s error=%s", job.job_id, error_message)
            job.complete(result=job.result, error_message=error_message[:2000])
            return

        job.complete(result=result)
        log_event(
            logger,
            logging.INFO,
            "harvest_job_completed",
            job_id=job.job_id,
            kind=job.kind,
            status=result.status.value,
            records=result.record_count,
        )

    def _harvest(self, job: HarvestJob) -> HarvestResult:
        progress = FanOutProgressSink(job.progress, LoggingProgressSink(kind=job.kind))
        try:
            with self._driver_factory(job.url) as driver:
                harvester = self._registry.create_harvester(
                    settings=job.settings,
                    driver=driver,
                    overrides=self._locator_overrides.get(job.kind),
                    cancellation=job.cancellation,
                    progress=progress,
                    sleep=self._sleep,
                )
                job.result = harvester.harvest()
                return job.result
        except PageDriverError as exc:
            # The page never opened; report it like any other failed session.
            job.result = HarvestResult(
                kind=job.kind,
                status=HarvestStatus.FAILED,
                records=(),
                measurement=0,
                steps=0,
                error_code=failure_codes.PAGE_DRIVER_ERROR,
                error_message=str(exc),
            )
            return job.result

    def _store(self, result: HarvestResult) -> None:
        if self._output_settings.output_dir:
            storage: RecordStorage = CsvRecordStorage(output_dir=self._output_settings.output_dir)
            storage.store(result)

        if self._output_settings.persist_to_database:
            session_factory = self._session_factory
            if session_factory is None:
                from db.session import SessionLocal

                session_factory = SessionLocal
            with session_factory() as db:
                SQLAlchemyRecordStorage(session=db).store(result)


@lru_cache(maxsize=1)
def get_harvest_service() -> HarvestService:
    """
    Build and cache the process-wide harvest service.
    """

    return HarvestService()
