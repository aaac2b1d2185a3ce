"""
Extraction schema for a venue's review feed.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence

from bs4 import Tag

from harvester.domain.harvest import ReviewRecord
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.parsing.locators import FieldLocator, clean_text, locate_field

ANONYMOUS_AUTHOR = "Anonymous"
UNKNOWN_SUBJECT = "Unknown Restaurant"
STARS_PATTERN = r"(\d+(?:\.\d+)?)"


class ReviewSchema(ExtractionSchema[ReviewRecord]):
    """
    Reviews keyed by author, stars and a text prefix.

    Besides the feed itself the schema carries the selectors the detail
    harvester needs for its pre-phase (title, reviews tab, sort menu), so a
    single locator config covers the whole view.
    """

    kind = "detail"
    item_label = "reviews"
    IDENTITY_ATTRIBUTE = "data-review-id"
    DEFAULT_SELECTORS = {
        "region": [
            '[role="feed"]',
            ".m6QErb.DxyBCb",
            ".review-dialog-list",
            ".section-scrollbox",
        ],
        "region_contains": ["[data-review-id]", ".jftiEf", ".MyEned"],
        "candidate": ["[data-review-id]"],
        "end_marker": [],
        "subject_name": [
            "h1.DUwDvf.lfPIob",
            "h1",
            '[data-value="title"]',
            ".section-hero-header-title",
            ".qrShPb",
        ],
        "reviews_tab": [
            "button[role='tab'][aria-selected='false']",
            "button[role='tab']",
            "button[data-tab-index]",
            ".tab button",
            "[role='tablist'] button",
        ],
        "sort_button": [
            "button[aria-label*='Sort']",
            "button[data-value='Sort']",
            "button[aria-haspopup='true']",
        ],
        "sort_option": [
            "[role='menuitemradio']",
            "[role='menuitem']",
            "div[role='menu'] [data-index]",
        ],
    }
    DEFAULT_LOCATORS = {
        "author": [
            FieldLocator(selector=".d4r55"),
            FieldLocator(selector=".WNxzHc"),
            FieldLocator(selector='[data-href*="/maps/contrib/"]'),
        ],
        "stars": [
            FieldLocator(selector='span[role="img"]', attribute="aria-label", pattern=STARS_PATTERN),
        ],
        "text": [
            FieldLocator(selector=".wiI7pd"),
            FieldLocator(selector=".MyEned"),
            FieldLocator(selector="[data-expandable-section]"),
        ],
    }
    scroll_distance = 1000

    def __init__(
        self,
        *,
        subject_name: str = UNKNOWN_SUBJECT,
        overrides: Mapping[str, Sequence[object]] | None = None,
    ) -> None:
        super().__init__(overrides=overrides)
        self.subject_name = subject_name

    def for_subject(self, subject_name: str) -> "ReviewSchema":
        scoped = copy.copy(self)
        scoped.subject_name = subject_name
        return scoped

    def measure(self, region: Tag) -> int:
        identifiers = set()
        for node in self.candidates(region):
            # Overridden candidate markup may lack review ids; fall back to its text.
            identifier = node.get(self.IDENTITY_ATTRIBUTE) or clean_text(node.get_text(" ", strip=True))
            if identifier:
                identifiers.add(identifier)
        return len(identifiers)

    def build_record(self, candidate: Tag) -> ReviewRecord | None:
        author = locate_field(candidate, self.locators_for("author")) or ANONYMOUS_AUTHOR
        stars = locate_field(candidate, self.locators_for("stars"))
        text = locate_field(candidate, self.locators_for("text")) or ""

        if not stars and not text:
            return None
        # Nested review-id nodes (photo buttons, menus) have no author.
        if author == ANONYMOUS_AUTHOR:
            return None

        return ReviewRecord(
            subject_name=self.subject_name,
            author=author,
            stars=float(stars) if stars else None,
            text=text,
        )


def clean_subject_name(raw: str | None) -> str | None:
    """
    Drop the " · category" and " (alias)" suffixes some layouts append to titles.
    """

    if not raw:
        return None
    name = raw.split("·")[0].strip()
    name = name.split("(")[0].strip()
    if not name or name == "Unknown":
        return None
    return name
