"""
Exception taxonomy for harvest sessions.

Only the HarvestController turns these into result fields; callers branch on
HarvestResult.status rather than catching them.
"""

from __future__ import annotations

from harvester import failure_codes


class HarvestError(Exception):
    """
    Base class for harvest errors carrying a stable failure code.
    """

    code: str = "harvest_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RegionNotFoundError(HarvestError):
    """
    The scrollable content region could not be located on the page.
    """

    code = failure_codes.REGION_NOT_FOUND

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or f"{kind.capitalize()} region not found on the current page.")


class PageDriverError(HarvestError):
    """
    The underlying page automation failed (browser closed, navigation lost).
    """

    code = failure_codes.PAGE_DRIVER_ERROR


class ExtractionCandidateError(HarvestError):
    """
    One candidate subtree could not be turned into a record.
    """

    code = failure_codes.EXTRACTION_CANDIDATE_ERROR

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        self.reason = message
        super().__init__(f"candidate={index} error={message}")


class SortApplicationError(HarvestError):
    """
    The requested review sort order could not be applied.
    """

    code = failure_codes.SORT_APPLICATION_FAILURE
