"""
harvester/services package marker.
"""

from harvester.services.harvest_service import (
    HarvestInProgressError,
    HarvestJob,
    HarvestService,
    get_harvest_service,
)

__all__ = [
    "HarvestInProgressError",
    "HarvestJob",
    "HarvestService",
    "get_harvest_service",
]
