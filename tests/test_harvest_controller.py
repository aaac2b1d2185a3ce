"""
tests/test_harvest_controller.py

Pytest scenarios for the scroll-harvest loop, driven by replayed HTML frames.

Coverage
--------
- Convergence after a no-growth streak
- Cap precedence and record truncation
- Cancellation returning everything loaded so far
- Missing region failing without progress events
- Empty feed converging with an empty_result warning
- Recycled duplicate nodes neither adding records nor resetting the streak
- End marker and max_steps termination
- Driver failure mid-loop and per-candidate extraction errors
- Progress monotonicity
"""

from __future__ import annotations

import logging

import pytest

from harvester import failure_codes
from harvester.domain.harvest import HarvestSession, HarvestStatus
from harvester.scraping.cancellation import CancellationChannel
from harvester.scraping.dedup import Deduplicator
from harvester.scraping.engine import HarvestController
from harvester.scraping.parsing import ListingSchema
from tests.fakes import RecordingProgressSink, RecordingSleeper, ReplayPageDriver, listing_feed


def _session(**overrides) -> HarvestSession:
    values = {
        "kind": "listing",
        "cap": 2000,
        "scroll_delay_ms": 600,
        "stabilize_delay_ms": 1000,
        "no_change_limit": 3,
        "max_steps": 50,
    }
    values.update(overrides)
    return HarvestSession(**values)


def _controller(
    driver: ReplayPageDriver,
    progress: RecordingProgressSink,
    sleeper: RecordingSleeper,
    *,
    schema: ListingSchema | None = None,
    cancellation: CancellationChannel | None = None,
) -> HarvestController:
    return HarvestController(
        schema=schema or ListingSchema(),
        driver=driver,
        cancellation=cancellation,
        progress=progress,
        sleep=sleeper,
    )


# ---------------------------------------------------------------------------
# Required scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_converges_after_no_change_streak(self, progress, sleeper) -> None:
        driver = ReplayPageDriver(
            [listing_feed(range(10)), listing_feed(range(20)), listing_feed(range(25))]
        )

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.CONVERGED
        assert result.record_count == 25
        assert result.measurement == 25
        # two growth steps, then three no-change steps
        assert result.steps == 5
        assert result.warnings == ()
        assert progress.events == [
            ("Scrolling to load restaurants", 0),
            ("Loading restaurants", 20),
            ("Loading restaurants", 25),
            ("Processing restaurants", 25),
        ]

    def test_caps_without_further_load_more(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed(range(10)), listing_feed(range(30))])

        result = _controller(driver, progress, sleeper).run(_session(cap=20))

        assert result.status is HarvestStatus.CAPPED
        assert result.record_count == 20
        assert driver.load_more_calls == 1
        assert ("Target reached", 30) in progress.events
        assert [record.name for record in result.records] == [f"Venue {index}" for index in range(20)]

    def test_cancel_returns_everything_loaded(self, progress, sleeper) -> None:
        cancellation = CancellationChannel()

        def cancel_on_second_load(calls: int) -> None:
            if calls == 2:
                cancellation.signal_stop()

        driver = ReplayPageDriver(
            [listing_feed(range(5)), listing_feed(range(10)), listing_feed(range(20)), listing_feed(range(30))],
            on_load_more=cancel_on_second_load,
        )

        result = _controller(driver, progress, sleeper, cancellation=cancellation).run(_session())

        assert result.status is HarvestStatus.CANCELLED
        assert result.record_count == 20
        assert driver.load_more_calls == 2

    def test_missing_region_fails_without_progress(self, progress, sleeper) -> None:
        driver = ReplayPageDriver(['<div class="no-feed-here"></div>'])

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.FAILED
        assert result.error_code == failure_codes.REGION_NOT_FOUND
        assert "Listing region" in (result.error_message or "")
        assert result.records == ()
        assert result.is_empty is False
        assert progress.events == []
        assert driver.load_more_calls == 0

    def test_empty_feed_converges_with_empty_result_warning(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed([])])

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.CONVERGED
        assert result.records == ()
        assert result.is_empty is True
        assert result.error_code is None
        assert result.warning_codes == [failure_codes.EMPTY_RESULT]
        assert set(result.warning_codes) <= set(failure_codes.SOFT_FAILURES)
        assert result.steps == 3

    def test_recycled_duplicates_do_not_reset_streak(self, progress, sleeper) -> None:
        recycled = list(range(10)) + list(range(5))
        driver = ReplayPageDriver(
            [
                listing_feed(range(10)),
                listing_feed(recycled),
                listing_feed(list(reversed(range(10)))),
            ]
        )

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.CONVERGED
        assert result.steps == 3
        assert result.record_count == 10
        assert len({record.identity_url for record in result.records}) == 10


# ---------------------------------------------------------------------------
# Termination policy
# ---------------------------------------------------------------------------


class TestTermination:
    def test_end_marker_overrides_streak(self, progress, sleeper) -> None:
        driver = ReplayPageDriver(
            [listing_feed(range(10)), listing_feed(range(15), end_marker=True)]
        )

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.END_MARKER_SEEN
        assert result.steps == 1
        assert result.record_count == 15

    def test_max_steps_bounds_the_loop(self, progress, sleeper) -> None:
        frames = [listing_feed(range(count)) for count in range(5, 100, 5)]
        driver = ReplayPageDriver(frames)

        result = _controller(driver, progress, sleeper).run(_session(max_steps=3))

        assert result.status is HarvestStatus.CAPPED
        assert result.steps == 3
        assert driver.load_more_calls == 3

    def test_zero_cap_stops_before_loading(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed(range(10))])

        result = _controller(driver, progress, sleeper).run(_session(cap=0))

        assert result.status is HarvestStatus.CAPPED
        assert result.records == ()
        assert driver.load_more_calls == 0

    def test_delays_follow_session(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed(range(10)), listing_feed(range(20))])

        _controller(driver, progress, sleeper).run(_session(no_change_limit=1))

        # grew: scroll + stabilize, then no change: scroll only
        assert sleeper.calls == [0.6, 1.0, 0.6]

    def test_listing_scrolls_region_to_bottom(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed(range(3))])

        _controller(driver, progress, sleeper).run(_session(no_change_limit=2))

        assert driver.scroll_distances == [None, None]

    def test_cancel_before_first_step(self, progress, sleeper) -> None:
        cancellation = CancellationChannel()
        cancellation.signal_stop()
        driver = ReplayPageDriver([listing_feed(range(7))])

        result = _controller(driver, progress, sleeper, cancellation=cancellation).run(_session())

        assert result.status is HarvestStatus.CANCELLED
        assert result.record_count == 7
        assert driver.load_more_calls == 0


# ---------------------------------------------------------------------------
# Failures during a session
# ---------------------------------------------------------------------------


class _ExplodingListingSchema(ListingSchema):
    def build_record(self, candidate):
        if candidate.get("aria-label") == "Venue 3":
            raise ValueError("malformed card")
        return super().build_record(candidate)


class TestFailures:
    def test_driver_error_keeps_last_snapshot(self, progress, sleeper) -> None:
        driver = ReplayPageDriver(
            [listing_feed(range(10)), listing_feed(range(20)), listing_feed(range(30))],
            fail_on_load=2,
        )

        result = _controller(driver, progress, sleeper).run(_session())

        assert result.status is HarvestStatus.FAILED
        assert result.error_code == failure_codes.PAGE_DRIVER_ERROR
        assert result.error_code in failure_codes.FATAL_FAILURES
        assert result.record_count == 20

    def test_candidate_error_is_skipped_with_warning(self, progress, sleeper) -> None:
        driver = ReplayPageDriver([listing_feed(range(6))])

        result = _controller(driver, progress, sleeper, schema=_ExplodingListingSchema()).run(
            _session(no_change_limit=1)
        )

        assert result.status is HarvestStatus.CONVERGED
        assert result.record_count == 5
        assert "Venue 3" not in [record.name for record in result.records]
        assert result.warning_codes == [failure_codes.EXTRACTION_CANDIDATE_ERROR]

    def test_candidate_error_log_names_index_once(self, progress, sleeper, caplog) -> None:
        caplog.set_level(logging.WARNING, logger="harvester.scraping.engine")
        driver = ReplayPageDriver([listing_feed(range(6))])

        controller = _controller(driver, progress, sleeper, schema=_ExplodingListingSchema())
        controller.run(_session(no_change_limit=1))

        messages = [record.getMessage() for record in caplog.records]
        skipped = [message for message in messages if "extraction_candidate_skipped" in message]
        assert len(skipped) == 1
        assert skipped[0].count("candidate=") == 0
        assert '"candidate": 3' in skipped[0]
        assert "malformed card" in skipped[0]

    def test_malformed_selector_override_does_not_escape(self, progress, sleeper) -> None:
        schema = ListingSchema(overrides={"candidate": ["a[href"], "end_marker": [":not("]})
        driver = ReplayPageDriver([listing_feed(range(4))])

        result = _controller(driver, progress, sleeper, schema=schema).run(_session(no_change_limit=1))

        assert result.status is HarvestStatus.CONVERGED
        assert result.record_count == 4

    def test_session_cannot_finish_twice(self) -> None:
        session = _session()
        session.finish(HarvestStatus.CONVERGED)
        with pytest.raises(RuntimeError):
            session.finish(HarvestStatus.CAPPED)

    def test_session_rejects_invalid_thresholds(self) -> None:
        with pytest.raises(ValueError):
            _session(no_change_limit=0)
        with pytest.raises(ValueError):
            _session(cap=-1)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    def test_progress_never_decreases_when_nodes_are_recycled(self, progress, sleeper) -> None:
        driver = ReplayPageDriver(
            [
                listing_feed(range(10)),
                listing_feed(range(20)),
                listing_feed(range(5, 20)),
                listing_feed(range(25)),
            ]
        )

        _controller(driver, progress, sleeper).run(_session())

        assert progress.counts == sorted(progress.counts)

    def test_extraction_is_idempotent_over_unchanged_region(self) -> None:
        driver = ReplayPageDriver([listing_feed(range(12))])
        schema = ListingSchema()
        snapshot = driver.snapshot(driver.locate(schema.region_selectors))
        deduplicator = Deduplicator()

        first = [deduplicator.add(record) for record in schema.extract(snapshot)]
        second = [deduplicator.add(record) for record in schema.extract(snapshot)]

        assert all(first)
        assert not any(second)
        assert len(deduplicator) == 12
