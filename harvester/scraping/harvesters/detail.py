"""
Detail harvester: one venue's reviews, with a best-effort pre-phase.
"""

from __future__ import annotations

import logging

from harvester.domain.harvest import HarvestWarning
from harvester.scraping.config.models import DEFAULT_SORT_ORDER
from harvester.scraping.errors import PageDriverError, SortApplicationError
from harvester.scraping.harvesters.base import HarvesterBase
from harvester.scraping.logging_utils import log_event
from harvester.scraping.parsing.base import ExtractionSchema
from harvester.scraping.parsing.reviews import UNKNOWN_SUBJECT, ReviewSchema, clean_subject_name

logger = logging.getLogger(__name__)

REVIEWS_TAB_KEYWORDS = ("Review", "Reviews", "クチコミ", "Reseñas", "Avis", "Rezension")

SORT_OPTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "most-relevant": ("most relevant", "relevance", "relevant"),
    "newest": ("newest", "recent", "latest"),
    "highest-rating": ("highest", "high rating", "top rated"),
    "lowest-rating": ("lowest", "low rating"),
}

TAB_SETTLE_MS = 2000
SORT_MENU_SETTLE_MS = 500
SORT_APPLY_SETTLE_MS = 3000


class DetailHarvester(HarvesterBase):
    """
    Harvest reviews for the venue currently open on the page.

    Before the loop starts it reads the venue name, opens the reviews tab and
    applies the configured sort order. None of these steps is fatal: a missed
    tab is only logged and a missed sort order becomes a warning.
    """

    kind = "detail"

    def prepare(self, warnings: list[HarvestWarning]) -> tuple[ExtractionSchema, str | None]:
        schema = self.schema
        subject_name = UNKNOWN_SUBJECT
        if isinstance(schema, ReviewSchema):
            subject_name = (
                clean_subject_name(self.driver.read_text(schema.selectors_for("subject_name")))
                or UNKNOWN_SUBJECT
            )
            schema = schema.for_subject(subject_name)
        self.subject_name = subject_name
        log_event(logger, logging.INFO, "detail_subject_resolved", subject_name=subject_name)

        self._open_reviews_tab(schema)

        try:
            self._apply_sort_order(schema)
        except SortApplicationError as exc:
            log_event(
                logger,
                logging.WARNING,
                "sort_application_failed",
                sort_order=self.settings.sort_order,
                error=exc.message,
            )
            warnings.append(HarvestWarning(code=exc.code, message=exc.message))

        return schema, subject_name

    def _open_reviews_tab(self, schema: ExtractionSchema) -> None:
        try:
            clicked = self.driver.click_first(
                schema.selectors_for("reviews_tab"),
                keywords=REVIEWS_TAB_KEYWORDS,
            )
        except PageDriverError as exc:
            log_event(logger, logging.WARNING, "reviews_tab_click_failed", error=exc.message)
            return
        if not clicked:
            log_event(logger, logging.WARNING, "reviews_tab_not_found")
            return
        log_event(logger, logging.INFO, "reviews_tab_opened")
        self.sleep(TAB_SETTLE_MS / 1000)

    def _apply_sort_order(self, schema: ExtractionSchema) -> None:
        sort_order = self.settings.sort_order or DEFAULT_SORT_ORDER
        if sort_order == DEFAULT_SORT_ORDER:
            return

        keywords = SORT_OPTION_KEYWORDS.get(sort_order)
        if keywords is None:
            raise SortApplicationError(f"Unsupported sort order '{sort_order}'.")

        if not self._click_sort_control(schema.selectors_for("sort_button"), (), "Sort control"):
            raise SortApplicationError(
                f"Sort control not found; reviews keep the default order instead of '{sort_order}'."
            )
        self.sleep(SORT_MENU_SETTLE_MS / 1000)

        option_label = f"Sort option '{sort_order}'"
        if not self._click_sort_control(schema.selectors_for("sort_option"), keywords, option_label):
            raise SortApplicationError(
                f"Sort option '{sort_order}' not found; reviews keep the default order."
            )
        log_event(logger, logging.INFO, "sort_order_applied", sort_order=sort_order)
        self.sleep(SORT_APPLY_SETTLE_MS / 1000)

    def _click_sort_control(self, selectors: list[str], keywords: tuple[str, ...], label: str) -> bool:
        # A click timeout on the sort menu must not fail the whole session.
        try:
            return self.driver.click_first(selectors, keywords=keywords)
        except PageDriverError as exc:
            raise SortApplicationError(
                f"{label} could not be clicked; reviews keep the default order. {exc.message}"
            ) from exc
