"""
tests/test_harvest_api.py

HarvestService and the /harvests endpoints, exercised with a replayed page
driver and inline/deferred task executors. No browser, no real database.
"""

from __future__ import annotations

import csv
import io
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.base import Base
from db.models import HarvestedRecord, HarvestRun
from harvester import failure_codes
from harvester.config import HarvestOutputSettings
from harvester.domain.harvest import HarvestStatus
from harvester.main import create_app
from harvester.scraping.errors import PageDriverError
from harvester.services.harvest_service import (
    HarvestInProgressError,
    HarvestService,
    JobState,
    get_harvest_service,
)
from tests.fakes import DETAIL_HEADER, ReplayPageDriver, listing_feed, review_feed


class InlineExecutor:
    def submit(self, task, *args, **kwargs) -> None:
        task(*args, **kwargs)


class DeferredExecutor:
    def __init__(self) -> None:
        self.pending = []

    def submit(self, task, *args, **kwargs) -> None:
        self.pending.append((task, args, kwargs))

    def run_all(self) -> None:
        while self.pending:
            task, args, kwargs = self.pending.pop(0)
            task(*args, **kwargs)


def _frames_for(url: str) -> tuple[list[str], str]:
    if "reviews" in url:
        return [review_feed(range(3)), review_feed(range(6))], DETAIL_HEADER
    return [listing_feed(range(4)), listing_feed(range(9))], ""


def _driver_factory(opened: list[ReplayPageDriver]):
    @contextmanager
    def factory(url: str):
        frames, header = _frames_for(url)
        driver = ReplayPageDriver(frames, header_html=header)
        opened.append(driver)
        yield driver

    return factory


def _service(executor, *, opened=None, output_settings=None, session_factory=None) -> HarvestService:
    return HarvestService(
        driver_factory=_driver_factory(opened if opened is not None else []),
        executor=executor,
        output_settings=output_settings or HarvestOutputSettings(),
        locator_overrides={},
        session_factory=session_factory,
        sleep=lambda seconds: None,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestHarvestService:
    def test_start_runs_job_to_completion(self) -> None:
        service = _service(InlineExecutor())

        job = service.start("listing", url="https://maps.example/search/pizza")

        assert job.state == JobState.FINISHED
        assert job.result.status is HarvestStatus.CONVERGED
        assert job.result.record_count == 9
        assert job.wait(timeout=0)
        assert job.progress.latest().phase == "Processing restaurants"

    def test_only_one_running_job(self) -> None:
        executor = DeferredExecutor()
        service = _service(executor)
        service.start("listing", url="https://maps.example/search/pizza")

        with pytest.raises(HarvestInProgressError):
            service.start("detail", url="https://maps.example/place/reviews")

    def test_stop_cancels_running_job(self) -> None:
        executor = DeferredExecutor()
        service = _service(executor)
        job = service.start("listing", url="https://maps.example/search/pizza")

        assert service.stop() is job
        executor.run_all()

        assert job.result.status is HarvestStatus.CANCELLED
        assert job.result.record_count == 4
        assert service.stop() is None

    def test_applies_request_overrides(self) -> None:
        service = _service(InlineExecutor())

        job = service.start("detail", url="https://maps.example/place/reviews", cap=2, speed="slow")

        assert job.settings.cap == 2
        assert job.settings.scroll_delay_ms == 1200
        assert job.result.status is HarvestStatus.CAPPED
        assert job.result.subject_name == "Cafe Luna"

    @pytest.mark.parametrize(
        ("kind", "kwargs"),
        [
            ("menu", {}),
            ("listing", {"speed": "warp"}),
            ("detail", {"sort_order": "oldest"}),
            ("listing", {"cap": -1}),
        ],
    )
    def test_invalid_requests_raise_value_error(self, kind, kwargs) -> None:
        with pytest.raises(ValueError):
            _service(InlineExecutor()).start(kind, url="https://maps.example/x", **kwargs)

    def test_blank_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            _service(InlineExecutor()).start("listing", url="  ")

    def test_page_open_failure_is_failed_result(self) -> None:
        @contextmanager
        def broken_factory(url: str):
            raise PageDriverError("net::ERR_NAME_NOT_RESOLVED")
            yield

        service = HarvestService(
            driver_factory=broken_factory,
            executor=InlineExecutor(),
            output_settings=HarvestOutputSettings(),
            locator_overrides={},
        )

        job = service.start("listing", url="https://nowhere.invalid")

        assert job.state == JobState.FINISHED
        assert job.result.status is HarvestStatus.FAILED
        assert job.result.error_code == failure_codes.PAGE_DRIVER_ERROR

    def test_unexpected_error_marks_job_errored(self) -> None:
        @contextmanager
        def exploding_factory(url: str):
            raise RuntimeError("browser crashed")
            yield

        service = HarvestService(
            driver_factory=exploding_factory,
            executor=InlineExecutor(),
            output_settings=HarvestOutputSettings(),
            locator_overrides={},
        )

        job = service.start("listing", url="https://maps.example/search/pizza")

        assert job.state == JobState.ERROR
        assert "browser crashed" in job.error_message
        assert not job.is_running

    def test_writes_csv_and_database(self, tmp_path) -> None:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        service = _service(
            InlineExecutor(),
            output_settings=HarvestOutputSettings(output_dir=str(tmp_path), persist_to_database=True),
            session_factory=session_factory,
        )

        service.start("detail", url="https://maps.example/place/reviews")

        assert (tmp_path / "Cafe Luna_reviews.csv").exists()
        with session_factory() as db:
            assert db.scalar(select(func.count()).select_from(HarvestRun)) == 1
            assert db.scalar(select(func.count()).select_from(HarvestedRecord)) == 6
        engine.dispose()


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture()
def deferred() -> DeferredExecutor:
    return DeferredExecutor()


@pytest.fixture()
def client_factory():
    app = create_app()

    def build(service: HarvestService) -> TestClient:
        app.dependency_overrides[get_harvest_service] = lambda: service
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


class TestHarvestApi:
    def test_start_poll_and_download(self, client_factory) -> None:
        client = client_factory(_service(InlineExecutor()))

        started = client.post("/harvests/listing", json={"url": "https://maps.example/search/pizza"})
        assert started.status_code == 202
        assert started.json()["state"] == "finished"

        current = client.get("/harvests/current")
        assert current.status_code == 200
        body = current.json()
        assert body["status"] == "converged"
        assert body["record_count"] == 9
        assert body["progress"][0] == {"phase": "Scrolling to load restaurants", "count": 0}

        download = client.get("/harvests/current/result.csv")
        assert download.status_code == 200
        assert download.headers["content-type"].startswith("text/csv")
        assert 'filename="restaurants.csv"' in download.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(download.text)))
        assert rows[0] == ["Name", "Star Rating", "Number of Reviews", "Link"]
        assert len(rows) == 10

    def test_conflict_while_running_then_stop(self, client_factory, deferred) -> None:
        client = client_factory(_service(deferred))

        assert client.post("/harvests/listing", json={"url": "https://maps.example/a"}).status_code == 202
        assert client.post("/harvests/detail", json={"url": "https://maps.example/reviews"}).status_code == 409
        assert client.get("/harvests/current/result.csv").status_code == 409

        stopped = client.post("/harvests/stop")
        assert stopped.status_code == 200
        assert stopped.json()["state"] == "running"

        deferred.run_all()
        assert client.get("/harvests/current").json()["status"] == "cancelled"

    def test_bad_requests(self, client_factory) -> None:
        client = client_factory(_service(InlineExecutor()))

        assert client.post("/harvests/menu", json={"url": "https://x"}).status_code == 400
        assert client.post("/harvests/listing", json={"url": "https://x", "speed": "warp"}).status_code == 400
        assert client.post("/harvests/listing", json={"url": "https://x", "cap": -5}).status_code == 422
        assert client.post("/harvests/listing", json={}).status_code == 422

    def test_nothing_started(self, client_factory) -> None:
        client = client_factory(_service(InlineExecutor()))

        assert client.get("/harvests/current").status_code == 404
        assert client.get("/harvests/current/result.csv").status_code == 404
        assert client.post("/harvests/stop").status_code == 409

    def test_health(self, client_factory) -> None:
        client = client_factory(_service(InlineExecutor()))

        assert client.get("/health").json() == {"status": "ok"}
