"""
harvester/domain/harvest.py

Domain models for one scroll-harvest session and its terminal result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class HarvestStatus(str, Enum):
    """
    Lifecycle status of a harvest session.

    RUNNING is the only non-terminal value; every session ends in exactly one
    of the others.
    """

    RUNNING = "running"
    CONVERGED = "converged"
    CAPPED = "capped"
    END_MARKER_SEEN = "end_marker_seen"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not HarvestStatus.RUNNING


@dataclass
class HarvestSession:
    """
    Per-invocation loop configuration and mutable loop state.

    Owned by one HarvestController for the duration of a single run and
    discarded once the HarvestResult is built.
    """

    kind: str
    cap: int
    scroll_delay_ms: int
    stabilize_delay_ms: int
    no_change_limit: int
    max_steps: int
    measurement: int = 0
    no_change_streak: int = 0
    step: int = 0
    status: HarvestStatus = HarvestStatus.RUNNING

    def __post_init__(self) -> None:
        if self.cap < 0:
            raise ValueError(f"cap must be >= 0, got {self.cap}.")
        if self.scroll_delay_ms < 0 or self.stabilize_delay_ms < 0:
            raise ValueError("Harvest delays must be >= 0.")
        if self.no_change_limit < 1:
            raise ValueError(f"no_change_limit must be >= 1, got {self.no_change_limit}.")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}.")

    def finish(self, status: HarvestStatus) -> None:
        if not status.is_terminal:
            raise ValueError("A session can only finish with a terminal status.")
        if self.status.is_terminal:
            raise RuntimeError(
                f"Session already finished with status={self.status.value}."
            )
        self.status = status


def format_number(value: float | int | None) -> str:
    """
    Render a numeric field the way the page shows it ("4.5", "5", "1234").
    """

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class ListingRecord:
    """
    One venue from a search-results feed.
    """

    name: str
    rating: float | None
    review_count: int | None
    identity_url: str

    @property
    def dedup_key(self) -> str:
        return self.identity_url


@dataclass(frozen=True)
class ReviewRecord:
    """
    One review from a venue's review feed.
    """

    subject_name: str
    author: str
    stars: float | None
    text: str

    @property
    def dedup_key(self) -> str:
        # Reviews carry no canonical URL.
        return f"{self.author}|{format_number(self.stars)}|{self.text[:100]}"


HarvestRecord = Union[ListingRecord, ReviewRecord]


@dataclass(frozen=True)
class HarvestWarning:
    """
    Soft, non-terminal problem recorded alongside a still-valid result.
    """

    code: str
    message: str


@dataclass(frozen=True)
class HarvestResult:
    """
    Terminal outcome of one harvest session.

    Produced exactly once per session, including cancelled and failed runs,
    so partial progress is never discarded.
    """

    kind: str
    status: HarvestStatus
    records: tuple[HarvestRecord, ...]
    measurement: int
    steps: int
    subject_name: str | None = None
    warnings: tuple[HarvestWarning, ...] = ()
    error_code: str | None = None
    error_message: str | None = None

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        """
        True when the region was found but yielded no usable records.
        """

        return self.status is not HarvestStatus.FAILED and not self.records

    @property
    def warning_codes(self) -> list[str]:
        return [warning.code for warning in self.warnings]


@dataclass(frozen=True)
class ProgressEvent:
    """
    One progress notification: a phase label and a running count.
    """

    phase: str
    count: int
    kind: str = ""
