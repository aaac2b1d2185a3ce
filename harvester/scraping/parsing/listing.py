"""
Extraction schema for venue search-result feeds.
"""

from __future__ import annotations

from bs4 import Tag

from harvester.domain.harvest import ListingRecord
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.parsing.locators import FieldLocator, closest, locate_field

RATING_LABEL_PATTERN = r"(\d+(?:\.\d+)?)\s*star"
NUMBER_PATTERN = r"(\d+(?:\.\d+)?)"
REVIEW_COUNT_PATTERN = r"\((\d+(?:,\d+)*)\)|(\d+(?:,\d+)*)\s*review"
PARENTHESIZED_COUNT_PATTERN = r"\((\d+(?:,\d+)*)\)"

_RATING_SELECTORS = [
    'span[role="img"][aria-label*="star"]',
    ".MW4etd",
    '.fontBodyMedium > span[aria-label*="star"]',
    '[data-value="Rating"]',
]
_REVIEW_COUNT_SELECTORS = [
    'span[aria-label*="review" i]',
    ".UY7F9",
    ".fontBodyMedium > span:last-child",
    'span:-soup-contains("(")',
    '[data-value="Review count"]',
]


def normalize_place_url(href: str) -> str:
    """
    Strip tracking parameters so the same place always maps to one URL.
    """

    return href.strip().split("&")[0]


class ListingSchema(ExtractionSchema[ListingRecord]):
    """
    Venue listings keyed by their place URL.

    Rating and review count are read from the result card around each anchor;
    both are optional because sponsored and new venues often lack them.
    """

    kind = "listing"
    item_label = "restaurants"
    DEFAULT_SELECTORS = {
        "region": ['[role="feed"]'],
        "region_contains": [],
        "candidate": ['a.hfpxzc[href*="/maps/place/"]'],
        "container": ["[data-result-index]", ".Nv2PK"],
        "end_marker": [".HlvSq"],
    }
    DEFAULT_LOCATORS = {
        "url": [FieldLocator(attribute="href")],
        "name": [
            FieldLocator(attribute="aria-label"),
            FieldLocator(attribute="title"),
            FieldLocator(),
        ],
        "rating": [
            locator
            for selector in _RATING_SELECTORS
            for locator in (
                FieldLocator(selector=selector, attribute="aria-label", pattern=RATING_LABEL_PATTERN),
                FieldLocator(selector=selector, pattern=NUMBER_PATTERN),
            )
        ],
        "review_count": [
            *(
                locator
                for selector in _REVIEW_COUNT_SELECTORS
                for locator in (
                    FieldLocator(selector=selector, pattern=REVIEW_COUNT_PATTERN),
                    FieldLocator(selector=selector, attribute="aria-label", pattern=REVIEW_COUNT_PATTERN),
                )
            ),
            FieldLocator(pattern=PARENTHESIZED_COUNT_PATTERN, scan_strings=True),
        ],
    }
    scroll_distance = None

    def measure(self, region: Tag) -> int:
        urls = set()
        for anchor in self.candidates(region):
            href = locate_field(anchor, self.locators_for("url"))
            if href:
                urls.add(normalize_place_url(href))
        return len(urls)

    def build_record(self, candidate: Tag) -> ListingRecord | None:
        href = locate_field(candidate, self.locators_for("url"))
        name = locate_field(candidate, self.locators_for("name"))
        if not href or not name:
            return None

        container = closest(candidate, self.selectors_for("container")) or candidate.parent or candidate
        rating = locate_field(container, self.locators_for("rating"))
        review_count = locate_field(container, self.locators_for("review_count"))

        return ListingRecord(
            name=name,
            rating=float(rating) if rating else None,
            review_count=int(review_count.replace(",", "")) if review_count else None,
            identity_url=normalize_place_url(href),
        )
