"""
Storage layer interfaces for harvest results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from harvester.domain.harvest import HarvestResult


class RecordStorage(ABC):
    """
    Result consumer: persists one terminal HarvestResult.
    """

    @abstractmethod
    def store(self, result: HarvestResult) -> int:
        """
        Persist the result's records and return the stored record count.
        """
