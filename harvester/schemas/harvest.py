"""
harvester/schemas/harvest.py

Request and response schemas for harvest endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class HarvestStartRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Page to open before harvesting")
    cap: int | None = Field(default=None, ge=0, description="Maximum records to collect")
    speed: str | None = Field(default=None, description="fast, normal or slow")
    sort_order: str | None = Field(
        default=None,
        description="Review order: most-relevant, newest, highest-rating, lowest-rating",
    )


class ProgressEventResponse(BaseModel):
    phase: str
    count: int = Field(..., ge=0)


class HarvestWarningResponse(BaseModel):
    code: str
    message: str


class HarvestJobResponse(BaseModel):
    """
    API response model for the current (or last) harvest job.
    """

    job_id: UUID
    kind: str
    url: str
    state: str
    status: str | None = None
    record_count: int = Field(default=0, ge=0)
    measurement: int = Field(default=0, ge=0)
    steps: int = Field(default=0, ge=0)
    subject_name: str | None = None
    warnings: list[HarvestWarningResponse] = Field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None
    progress: list[ProgressEventResponse] = Field(default_factory=list)
    started_at: datetime
    completed_at: datetime | None = None
