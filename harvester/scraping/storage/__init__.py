"""
Storage layer exports.
"""

from harvester.scraping.storage.base import RecordStorage
from harvester.scraping.storage.csv_storage import CsvRecordStorage, render_csv, result_filename
from harvester.scraping.storage.sqlalchemy_storage import SQLAlchemyRecordStorage

__all__ = [
    "CsvRecordStorage",
    "RecordStorage",
    "SQLAlchemyRecordStorage",
    "render_csv",
    "result_filename",
]
