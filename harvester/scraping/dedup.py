"""
First-seen-wins record deduplication scoped to one harvest session.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

RecordT = TypeVar("RecordT")


def _default_key(record: object) -> Hashable:
    return record.dedup_key  # type: ignore[attr-defined]


class Deduplicator(Generic[RecordT]):
    """
    Keep the first record seen per key, in discovery order.

    Virtualized feeds re-render the same items after a scroll; those
    re-observations are discarded here and never counted as new records.
    """

    def __init__(
        self,
        key: Callable[[RecordT], Hashable] = _default_key,
        *,
        limit: int | None = None,
    ) -> None:
        self._key = key
        self._limit = limit
        self._seen: set[Hashable] = set()
        self._records: list[RecordT] = []

    def add(self, record: RecordT) -> bool:
        """
        Insert record if its key is new and the limit allows; return True if inserted.
        """

        if self.is_full:
            return False
        key = self._key(record)
        if key in self._seen:
            return False
        self._seen.add(key)
        self._records.append(record)
        return True

    @property
    def is_full(self) -> bool:
        return self._limit is not None and len(self._records) >= self._limit

    @property
    def records(self) -> tuple[RecordT, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: object) -> bool:
        return self._key(record) in self._seen  # type: ignore[arg-type]
