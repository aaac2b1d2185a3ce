"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.harvest_run import HarvestedRecord, HarvestRun

__all__ = [
    "HarvestRun",
    "HarvestedRecord",
]
