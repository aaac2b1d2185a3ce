"""
harvester/domain package marker.
"""

from harvester.domain.harvest import (
    HarvestRecord,
    HarvestResult,
    HarvestSession,
    HarvestStatus,
    HarvestWarning,
    ListingRecord,
    ProgressEvent,
    ReviewRecord,
    format_number,
)

__all__ = [
    "HarvestRecord",
    "HarvestResult",
    "HarvestSession",
    "HarvestStatus",
    "HarvestWarning",
    "ListingRecord",
    "ProgressEvent",
    "ReviewRecord",
    "format_number",
]
