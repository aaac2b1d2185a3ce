"""
CSV serialization of harvest results.

Column layouts match the files users already import elsewhere:

    listing: Name, Star Rating, Number of Reviews, Link   (missing -> "N/A")
    detail:  Restaurant, Reviewer, Stars, Review
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterator
from pathlib import Path

from harvester.domain.harvest import HarvestResult, ListingRecord, ReviewRecord, format_number
from harvester.scraping.logging_utils import log_event
from harvester.scraping.parsing.reviews import UNKNOWN_SUBJECT
from harvester.scraping.storage.base import RecordStorage

logger = logging.getLogger(__name__)

LISTING_HEADERS = ["Name", "Star Rating", "Number of Reviews", "Link"]
REVIEW_HEADERS = ["Restaurant", "Reviewer", "Stars", "Review"]
MISSING_VALUE = "N/A"
LISTING_FILENAME = "restaurants.csv"


def sanitize_filename(name: str) -> str:
    cleaned = re.sub(r"[^\w\s-]", "", name).strip()
    return cleaned or "restaurant"


def result_filename(result: HarvestResult) -> str:
    if result.kind == "listing":
        return LISTING_FILENAME
    return f"{sanitize_filename(result.subject_name or UNKNOWN_SUBJECT)}_reviews.csv"


def _headers_for(kind: str) -> list[str]:
    if kind == "listing":
        return LISTING_HEADERS
    if kind == "detail":
        return REVIEW_HEADERS
    raise ValueError(f"No CSV layout for harvest kind '{kind}'.")


def _row_for(record: ListingRecord | ReviewRecord) -> list[str]:
    if isinstance(record, ListingRecord):
        return [
            record.name,
            format_number(record.rating) or MISSING_VALUE,
            format_number(record.review_count) or MISSING_VALUE,
            record.identity_url,
        ]
    return [
        record.subject_name,
        record.author,
        format_number(record.stars),
        record.text,
    ]


def iter_csv_lines(result: HarvestResult) -> Iterator[str]:
    """
    Yield the CSV document line by line, header first. Every cell is quoted.
    """

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(_headers_for(result.kind))
    yield buffer.getvalue()

    for record in result.records:
        buffer.seek(0)
        buffer.truncate(0)
        writer.writerow(_row_for(record))
        yield buffer.getvalue()


def render_csv(result: HarvestResult) -> str:
    return "".join(iter_csv_lines(result))


class CsvRecordStorage(RecordStorage):
    """
    Write each result to `<output_dir>/<file name>`, replacing any earlier file.
    """

    def __init__(self, *, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)
        self.last_path: Path | None = None

    def store(self, result: HarvestResult) -> int:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / result_filename(result)
        path.write_text(render_csv(result), encoding="utf-8")
        self.last_path = path
        log_event(
            logger,
            logging.INFO,
            "harvest_csv_written",
            kind=result.kind,
            path=str(path),
            records=result.record_count,
        )
        return result.record_count
