"""
db/models/harvest_run.py

Persisted harvest sessions and the records they produced.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class HarvestRun(Base, TimestampMixin):
    __tablename__ = "harvest_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="listing, detail",
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    subject_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    measurement: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    steps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    warnings_json: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Soft warnings as [{code, message}]",
    )
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    records: Mapped[list["HarvestedRecord"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="HarvestedRecord.position",
    )

    __table_args__ = (
        Index("ix_harvest_runs_kind", "kind"),
        Index("ix_harvest_runs_status", "status"),
        Index("ix_harvest_runs_created_at", "created_at"),
    )


class HarvestedRecord(Base, TimestampMixin):
    __tablename__ = "harvested_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("harvest_runs.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Discovery order within the run",
    )
    dedup_key: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    run: Mapped[HarvestRun] = relationship(back_populates="records")

    __table_args__ = (
        Index("ix_harvested_records_run_id_position", "run_id", "position", unique=True),
    )
