"""
Repository exports.
"""

from harvester.repositories.harvest_run_repository import HarvestRunRepository

__all__ = ["HarvestRunRepository"]
