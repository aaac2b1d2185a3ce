"""
harvester/schemas package marker.
"""

from harvester.schemas.harvest import (
    HarvestJobResponse,
    HarvestStartRequest,
    HarvestWarningResponse,
    ProgressEventResponse,
)

__all__ = [
    "HarvestJobResponse",
    "HarvestStartRequest",
    "HarvestWarningResponse",
    "ProgressEventResponse",
]
