"""
Declarative field locators evaluated against BeautifulSoup candidates.

Each record field is described by an ordered list of FieldLocator entries;
locate_field() tries them in order and returns the first non-empty value.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import soupsieve
from bs4 import Tag

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(value: str | None) -> str:
    """
    Collapse whitespace/newline runs to a single space and trim.
    """

    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip()


@dataclass(frozen=True)
class FieldLocator:
    """
    One strategy for reading a field from a candidate node.

    selector:    CSS selector relative to the candidate; None means the
                 candidate node itself.
    attribute:   attribute to read; None means the node's text content.
    pattern:     optional regex applied to the raw value. The first
                 non-empty capture group wins, or the whole match when the
                 pattern has no groups.
    scan_strings: apply the pattern to each text node separately instead of
                 the joined text (for values split across inline nodes).
    """

    selector: str | None = None
    attribute: str | None = None
    pattern: str | None = None
    scan_strings: bool = False

    def evaluate(self, candidate: Tag) -> str | None:
        node = candidate if self.selector is None else candidate.select_one(self.selector)
        if node is None:
            return None

        if self.scan_strings:
            for text in node.stripped_strings:
                value = self._apply_pattern(text)
                if value:
                    return value
            return None

        if self.attribute is None:
            raw = node.get_text(" ", strip=True)
        else:
            raw = _attribute_text(node.get(self.attribute))
        return self._apply_pattern(raw)

    def _apply_pattern(self, raw: str) -> str | None:
        text = clean_text(raw)
        if not text:
            return None
        if self.pattern is None:
            return text

        match = re.search(self.pattern, text, flags=re.IGNORECASE)
        if match is None:
            return None
        if match.re.groups == 0:
            return match.group(0).strip() or None
        for group in match.groups():
            if group:
                return group.strip()
        return None


def _attribute_text(value: Any) -> str:
    # bs4 returns multi-valued attributes such as class as lists.
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(item) for item in value)
    return str(value)


def is_valid_selector(selector: str) -> bool:
    """
    True when soupsieve can compile the selector.

    Overrides come from a user-edited JSON file; a malformed entry is dropped
    here instead of failing later inside region.select().
    """

    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError:
        return False
    return True


def locate_field(candidate: Tag, locators: Sequence[FieldLocator]) -> str | None:
    """
    Return the first non-empty value produced by the ordered locators.
    """

    for locator in locators:
        value = locator.evaluate(candidate)
        if value:
            return value
    return None


def select_first(root: Tag, selectors: Sequence[str]) -> Tag | None:
    for selector in selectors:
        found = root.select_one(selector)
        if found is not None:
            return found
    return None


def closest(node: Tag, selectors: Sequence[str]) -> Tag | None:
    """
    Return the nearest ancestor (or the node itself) matching any selector.
    """

    for selector in selectors:
        found = node.css.closest(selector)
        if found is not None:
            return found
    return None


def locator_from_config(entry: object) -> FieldLocator | None:
    """
    Build a FieldLocator from a config entry.

    A bare string is a selector whose text is read; a mapping may also set
    attribute, pattern and scan_strings.
    """

    if isinstance(entry, str):
        selector = entry.strip()
        return FieldLocator(selector=selector) if selector and is_valid_selector(selector) else None
    if not isinstance(entry, Mapping):
        return None

    selector = entry.get("selector")
    attribute = entry.get("attribute")
    pattern = entry.get("pattern")
    if selector is not None and (not isinstance(selector, str) or not selector.strip()):
        return None
    if isinstance(selector, str) and not is_valid_selector(selector.strip()):
        return None
    if attribute is not None and not isinstance(attribute, str):
        return None
    if pattern is not None:
        if not isinstance(pattern, str):
            return None
        try:
            re.compile(pattern)
        except re.error:
            return None
    return FieldLocator(
        selector=selector.strip() if isinstance(selector, str) else None,
        attribute=attribute.strip() if isinstance(attribute, str) and attribute.strip() else None,
        pattern=pattern,
        scan_strings=bool(entry.get("scan_strings", False)),
    )
