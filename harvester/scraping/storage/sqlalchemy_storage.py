"""
SQLAlchemy-backed storage implementation for harvest results.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from harvester.domain.harvest import HarvestResult
from harvester.repositories.harvest_run_repository import HarvestRunRepository
from harvester.scraping.logging_utils import log_event
from harvester.scraping.storage.base import RecordStorage

logger = logging.getLogger(__name__)


class SQLAlchemyRecordStorage(RecordStorage):
    """
    Persist a harvest run and its records through the repository and DB session.
    """

    def __init__(self, *, session: Session, batch_size: int = 1000) -> None:
        self._session = session
        self._batch_size = max(1, batch_size)
        self.last_run_id = None

    def store(self, result: HarvestResult) -> int:
        repository = HarvestRunRepository(self._session)
        try:
            run = repository.add_result(result, batch_size=self._batch_size)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

        self.last_run_id = run.id
        log_event(
            logger,
            logging.INFO,
            "harvest_run_persisted",
            run_id=run.id,
            kind=result.kind,
            status=result.status.value,
            records=result.record_count,
        )
        return result.record_count
