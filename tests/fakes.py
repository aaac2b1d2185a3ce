"""
tests/fakes.py

An in-memory PageDriver that replays HTML frames, HTML builders for listing
and review feeds, and recording collaborators.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from bs4 import BeautifulSoup

from harvester.scraping.drivers.base import PageDriver, contains_keyword
from harvester.scraping.errors import PageDriverError
from harvester.scraping.progress import ProgressSink


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------


def listing_card(index: int, *, rating: str | None = "4.5", reviews: str | None = "1,234") -> str:
    rating_html = f'<span class="MW4etd">{rating}</span>' if rating is not None else ""
    reviews_html = f'<span class="UY7F9">({reviews})</span>' if reviews is not None else ""
    return (
        f'<div class="Nv2PK" data-result-index="{index}">'
        f'<a class="hfpxzc" href="https://www.google.com/maps/place/Venue+{index}/data=!{index}'
        f'&amp;authuser=0" aria-label="Venue {index}"></a>'
        f"{rating_html}{reviews_html}"
        "</div>"
    )


def listing_feed(indices: Sequence[int], *, end_marker: bool = False) -> str:
    cards = "".join(listing_card(index) for index in indices)
    marker = '<div class="HlvSq">You\'ve reached the end of the list.</div>' if end_marker else ""
    return f'<div role="feed">{cards}{marker}</div>'


def review_card(index: int, *, author: str | None = None, stars: int | None = 5, text: str | None = None) -> str:
    author = f"Author {index}" if author is None else author
    author_html = f'<div class="d4r55">{author}</div>' if author else ""
    stars_html = f'<span role="img" aria-label="{stars} stars"></span>' if stars is not None else ""
    body = f"Review text {index}" if text is None else text
    text_html = f'<span class="wiI7pd">{body}</span>' if body else ""
    return f'<div class="jftiEf" data-review-id="r{index}">{author_html}{stars_html}{text_html}</div>'


def review_feed(indices: Sequence[int]) -> str:
    return '<div class="m6QErb DxyBCb">' + "".join(review_card(index) for index in indices) + "</div>"


DETAIL_HEADER = (
    '<h1 class="DUwDvf lfPIob">Cafe Luna · Italian restaurant</h1>'
    '<div role="tablist">'
    '<button role="tab" aria-selected="true">Overview</button>'
    '<button role="tab" aria-selected="false" aria-label="Reviews for Cafe Luna">Reviews</button>'
    "</div>"
)

SORT_CONTROLS = (
    '<button aria-label="Sort reviews">Sort</button>'
    '<div role="menu">'
    '<div role="menuitemradio">Most relevant</div>'
    '<div role="menuitemradio">Newest</div>'
    '<div role="menuitemradio">Highest rating</div>'
    '<div role="menuitemradio">Lowest rating</div>'
    "</div>"
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ReplayPageDriver(PageDriver):
    """
    Serve a scripted sequence of page frames.

    Each load_more() advances to the next frame and stays on the last one,
    which models a feed that has nothing more to load.
    """

    def __init__(
        self,
        frames: Sequence[str],
        *,
        header_html: str = "",
        on_load_more: Callable[[int], None] | None = None,
        fail_on_load: int | None = None,
    ) -> None:
        self.frames = list(frames) or [""]
        self.header_html = header_html
        self.on_load_more = on_load_more
        self.fail_on_load = fail_on_load
        self.frame_index = 0
        self.load_more_calls = 0
        self.scroll_distances: list[int | None] = []
        self.clicked: list[str] = []
        self.locate_calls = 0

    def _page(self) -> BeautifulSoup:
        return BeautifulSoup(self.header_html + self.frames[self.frame_index], "html.parser")

    def locate(self, selectors: Sequence[str], *, containing: Sequence[str] = ()) -> str | None:
        self.locate_calls += 1
        page = self._page()
        for selector in selectors:
            node = page.select_one(selector)
            if node is None:
                continue
            if not containing or any(node.select_one(inner) is not None for inner in containing):
                return selector
        return None

    def load_more(self, region: str, *, distance: int | None = None) -> None:
        self.load_more_calls += 1
        self.scroll_distances.append(distance)
        if self.fail_on_load is not None and self.load_more_calls >= self.fail_on_load:
            raise PageDriverError("Target page, context or browser has been closed")
        self.frame_index = min(self.frame_index + 1, len(self.frames) - 1)
        if self.on_load_more is not None:
            self.on_load_more(self.load_more_calls)

    def snapshot(self, region: str) -> BeautifulSoup:
        node = self._page().select_one(region)
        return BeautifulSoup(str(node) if node is not None else "", "html.parser")

    def read_text(self, selectors: Sequence[str]) -> str | None:
        page = self._page()
        for selector in selectors:
            node = page.select_one(selector)
            if node is not None and node.get_text(strip=True):
                return node.get_text(" ", strip=True)
        return None

    def click_first(self, selectors: Sequence[str], *, keywords: Sequence[str] = ()) -> bool:
        page = self._page()
        for selector in selectors:
            for node in page.select(selector):
                label = f"{node.get_text(' ', strip=True)} {node.get('aria-label') or ''}"
                if contains_keyword(label, keywords):
                    self.clicked.append(node.get_text(" ", strip=True))
                    return True
        return False


class RecordingProgressSink(ProgressSink):
    def __init__(self) -> None:
        self.events: list[tuple[str, int]] = []

    def emit(self, phase: str, count: int) -> None:
        self.events.append((phase, count))

    @property
    def counts(self) -> list[int]:
        return [count for _, count in self.events]


class RecordingSleeper:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

