"""
harvester/repositories/harvest_run_repository.py

Persistence layer for harvest runs and their records.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.harvest_run import HarvestedRecord, HarvestRun
from harvester.domain.harvest import HarvestResult

_DEFAULT_BATCH_SIZE = 1000


class HarvestRunRepository:
    """
    Repository writing one HarvestRun row plus its ordered records.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def add_result(
        self,
        result: HarvestResult,
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> HarvestRun:
        """
        Stage a run and its records in the current session. The caller commits.
        """

        run = HarvestRun(
            kind=result.kind,
            status=result.status.value,
            subject_name=result.subject_name,
            measurement=result.measurement,
            steps=result.steps,
            record_count=result.record_count,
            warnings_json=[asdict(warning) for warning in result.warnings],
            error_code=result.error_code,
            error_message=result.error_message,
        )
        self._session.add(run)
        self._session.flush()

        size = max(1, batch_size)
        records = list(result.records)
        for start in range(0, len(records), size):
            chunk = records[start : start + size]
            self._session.add_all(
                HarvestedRecord(
                    run_id=run.id,
                    position=start + offset,
                    dedup_key=record.dedup_key,
                    payload=self._payload(record),
                )
                for offset, record in enumerate(chunk)
            )
            self._session.flush()
        return run

    def get_run(self, run_id: uuid.UUID) -> HarvestRun | None:
        return self._session.get(HarvestRun, run_id)

    def list_record_payloads(self, run_id: uuid.UUID) -> list[dict[str, Any]]:
        stmt = (
            select(HarvestedRecord.payload)
            .where(HarvestedRecord.run_id == run_id)
            .order_by(HarvestedRecord.position)
        )
        return list(self._session.scalars(stmt).all())

    @staticmethod
    def _payload(record: Any) -> dict[str, Any]:
        return asdict(record)
