"""
Base extraction schema shared by the listing and review harvesters.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from typing import ClassVar, Generic, TypeVar

from bs4 import Tag

from harvester.scraping.errors import ExtractionCandidateError
from harvester.scraping.logging_utils import log_event
from harvester.scraping.parsing.locators import FieldLocator, is_valid_selector, locator_from_config

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class ExtractionSchema(ABC, Generic[RecordT]):
    """
    Describes where a feed lives on the page and how to read records from it.

    Structural selectors (region, candidate, end marker, ...) and per-field
    locators are plain data. Configured overrides are tried before the
    built-in defaults.
    """

    kind: ClassVar[str]
    item_label: ClassVar[str]
    DEFAULT_SELECTORS: ClassVar[dict[str, list[str]]] = {}
    DEFAULT_LOCATORS: ClassVar[dict[str, list[FieldLocator]]] = {}
    # None scrolls the region to its bottom; an int scrolls by that many pixels.
    scroll_distance: ClassVar[int | None] = None

    def __init__(self, *, overrides: Mapping[str, Sequence[object]] | None = None) -> None:
        overrides = overrides or {}
        self._selectors: dict[str, list[str]] = {}
        for key, defaults in self.DEFAULT_SELECTORS.items():
            configured = []
            for item in overrides.get(key, []):
                if not isinstance(item, str) or not item.strip():
                    continue
                if not is_valid_selector(item.strip()):
                    log_event(logger, logging.WARNING, "selector_override_dropped", key=key, selector=item)
                    continue
                configured.append(item.strip())
            self._selectors[key] = _unique([*configured, *defaults])

        self._locators: dict[str, list[FieldLocator]] = {}
        for key, defaults in self.DEFAULT_LOCATORS.items():
            configured = [
                locator
                for locator in (locator_from_config(entry) for entry in overrides.get(key, []))
                if locator is not None
            ]
            self._locators[key] = _unique([*configured, *defaults])

    def selectors_for(self, key: str) -> list[str]:
        return list(self._selectors.get(key, []))

    def locators_for(self, key: str) -> list[FieldLocator]:
        return list(self._locators.get(key, []))

    @property
    def region_selectors(self) -> list[str]:
        return self.selectors_for("region")

    @property
    def region_must_contain(self) -> list[str]:
        return self.selectors_for("region_contains")

    def candidates(self, region: Tag) -> list[Tag]:
        found: list[Tag] = []
        seen: set[int] = set()
        for selector in self.selectors_for("candidate"):
            for node in region.select(selector):
                if id(node) in seen:
                    continue
                seen.add(id(node))
                found.append(node)
        return found

    def end_marker_seen(self, region: Tag) -> bool:
        return any(region.select_one(selector) is not None for selector in self.selectors_for("end_marker"))

    @abstractmethod
    def measure(self, region: Tag) -> int:
        """
        Count distinct loaded items in the region.
        """

    @abstractmethod
    def build_record(self, candidate: Tag) -> RecordT | None:
        """
        Read one record from a candidate node, or None when it has no usable content.
        """

    def extract(self, region: Tag) -> Iterator[RecordT | ExtractionCandidateError]:
        """
        Lazily yield records in document order.

        A candidate that raises is reported as an ExtractionCandidateError and
        skipped; the rest of the pass continues.
        """

        for index, candidate in enumerate(self.candidates(region)):
            try:
                record = self.build_record(candidate)
            except Exception as exc:
                yield ExtractionCandidateError(index, f"{type(exc).__name__}: {exc}")
                continue
            if record is not None:
                yield record


def _unique(items: list) -> list:
    deduped = []
    for item in items:
        if item not in deduped:
            deduped.append(item)
    return deduped
