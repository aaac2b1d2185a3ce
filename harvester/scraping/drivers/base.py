"""
Page automation boundary used by the harvest loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from bs4 import BeautifulSoup

Region = Any


class PageDriver(ABC):
    """
    Effectful operations on one already-loaded page.

    Implementations raise PageDriverError for automation failures; a missing
    element is never an error and is reported as None/False instead.
    """

    @abstractmethod
    def locate(
        self,
        selectors: Sequence[str],
        *,
        containing: Sequence[str] = (),
    ) -> Region | None:
        """
        Return the first region matching a selector, or None.

        When `containing` is given, a match only counts if it holds at least
        one element matching those selectors.
        """

    @abstractmethod
    def load_more(self, region: Region, *, distance: int | None = None) -> None:
        """
        Ask the page for more content by scrolling the region.

        distance=None scrolls to the bottom; an int scrolls by that many
        pixels. Calling this on a fully loaded region is a no-op.
        """

    @abstractmethod
    def snapshot(self, region: Region) -> BeautifulSoup:
        """
        Parse the region's current markup.
        """

    @abstractmethod
    def read_text(self, selectors: Sequence[str]) -> str | None:
        """
        Return the text of the first page element matching a selector that has text.
        """

    @abstractmethod
    def click_first(self, selectors: Sequence[str], *, keywords: Sequence[str] = ()) -> bool:
        """
        Click the first element matching a selector whose text or aria-label
        contains any keyword (case-insensitive). Return True if clicked.
        """


def contains_keyword(text: str | None, keywords: Sequence[str]) -> bool:
    if not keywords:
        return True
    if not text:
        return False
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)
