"""
Playwright-backed page driver.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from bs4 import BeautifulSoup
from playwright.sync_api import ElementHandle, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from harvester.config import BrowserSettings
from harvester.scraping.drivers.base import PageDriver, contains_keyword
from harvester.scraping.errors import PageDriverError
from harvester.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)

# Walks up from the element to the nearest scrollable container; the window
# is used when none exists.
_SCROLL_SCRIPT = """
([el, distance]) => {
  const isScrollable = (node) => node && node.scrollHeight > node.clientHeight + 10;
  let target = el;
  while (target && target !== document.body && !isScrollable(target)) {
    target = target.parentElement;
  }
  if (!target || target === document.body) {
    if (distance === null) {
      window.scrollTo(0, document.body.scrollHeight);
    } else {
      window.scrollBy(0, distance);
    }
    return;
  }
  if (distance === null) {
    target.scrollTo(0, target.scrollHeight);
  } else {
    target.scrollBy(0, distance);
  }
}
"""

_SCROLLABLE_ANCESTOR_SCRIPT = """
(el) => {
  let parent = el.parentElement;
  while (parent && parent !== document.body) {
    if (parent.scrollHeight > parent.clientHeight + 10) {
      return parent;
    }
    parent = parent.parentElement;
  }
  return null;
}
"""


class PlaywrightPageDriver(PageDriver):
    """
    Drive a live Playwright page with the sync API.

    The sync API is bound to the thread that started Playwright, so one
    driver must be used from a single thread.
    """

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    def locate(
        self,
        selectors: Sequence[str],
        *,
        containing: Sequence[str] = (),
    ) -> ElementHandle | None:
        try:
            for selector in selectors:
                handle = self._page.query_selector(selector)
                if handle is None:
                    continue
                if not containing or any(handle.query_selector(inner) for inner in containing):
                    log_event(logger, logging.DEBUG, "region_located", selector=selector)
                    return handle

            # Last resort: climb from the first item to its scroll container.
            for inner in containing:
                item = self._page.query_selector(inner)
                if item is None:
                    continue
                ancestor = item.evaluate_handle(_SCROLLABLE_ANCESTOR_SCRIPT).as_element()
                if ancestor is not None:
                    log_event(logger, logging.DEBUG, "region_located_by_traversal", item_selector=inner)
                    return ancestor
        except PlaywrightError as exc:
            raise PageDriverError(f"Region lookup failed: {exc}") from exc
        return None

    def load_more(self, region: ElementHandle, *, distance: int | None = None) -> None:
        try:
            self._page.evaluate(_SCROLL_SCRIPT, [region, distance])
        except PlaywrightError as exc:
            raise PageDriverError(f"Scroll failed: {exc}") from exc

    def snapshot(self, region: ElementHandle) -> BeautifulSoup:
        try:
            html = region.evaluate("(el) => el.outerHTML")
        except PlaywrightError as exc:
            raise PageDriverError(f"Snapshot failed: {exc}") from exc
        return BeautifulSoup(html, "html.parser")

    def read_text(self, selectors: Sequence[str]) -> str | None:
        try:
            for selector in selectors:
                handle = self._page.query_selector(selector)
                if handle is None:
                    continue
                text = (handle.text_content() or "").strip()
                if text:
                    return text
        except PlaywrightError as exc:
            raise PageDriverError(f"Text lookup failed: {exc}") from exc
        return None

    def click_first(self, selectors: Sequence[str], *, keywords: Sequence[str] = ()) -> bool:
        try:
            for selector in selectors:
                for handle in self._page.query_selector_all(selector):
                    label = f"{handle.text_content() or ''} {handle.get_attribute('aria-label') or ''}"
                    if not contains_keyword(label, keywords):
                        continue
                    handle.scroll_into_view_if_needed()
                    handle.click()
                    log_event(
                        logger,
                        logging.DEBUG,
                        "element_clicked",
                        selector=selector,
                        label=label.strip()[:80],
                    )
                    return True
        except PlaywrightError as exc:
            raise PageDriverError(f"Click failed: {exc}") from exc
        return False


@contextmanager
def open_playwright_driver(
    url: str,
    *,
    settings: BrowserSettings,
) -> Iterator[PlaywrightPageDriver]:
    """
    Launch Chromium, open `url`, and yield a driver bound to that page.
    """

    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=settings.headless)
        try:
            context = browser.new_context(
                user_agent=settings.user_agent,
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
                locale=settings.locale,
            )
            page = context.new_page()
            page.set_default_timeout(settings.navigation_timeout_ms)
            try:
                page.goto(url, wait_until="domcontentloaded", timeout=settings.navigation_timeout_ms)
                page.wait_for_timeout(settings.initial_wait_ms)
            except PlaywrightError as exc:
                raise PageDriverError(f"Navigation to {url} failed: {exc}") from exc
            log_event(logger, logging.INFO, "page_opened", url=url, headless=settings.headless)
            yield PlaywrightPageDriver(page)
        finally:
            browser.close()
