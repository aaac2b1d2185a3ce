"""
harvester/api/routers/harvest.py

Harvest control endpoints: start, stop, poll, download.
"""

from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from harvester.schemas.harvest import (
    HarvestJobResponse,
    HarvestStartRequest,
    HarvestWarningResponse,
    ProgressEventResponse,
)
from harvester.scraping.storage.csv_storage import iter_csv_lines, result_filename
from harvester.services.harvest_service import (
    HarvestInProgressError,
    HarvestJob,
    HarvestService,
    get_harvest_service,
)

router = APIRouter(tags=["harvests"])


def _to_response(job: HarvestJob) -> HarvestJobResponse:
    result = job.result
    return HarvestJobResponse(
        job_id=job.job_id,
        kind=job.kind,
        url=job.url,
        state=job.state,
        status=result.status.value if result is not None else None,
        record_count=result.record_count if result is not None else 0,
        measurement=result.measurement if result is not None else 0,
        steps=result.steps if result is not None else 0,
        subject_name=result.subject_name if result is not None else None,
        warnings=[
            HarvestWarningResponse(code=warning.code, message=warning.message)
            for warning in (result.warnings if result is not None else ())
        ],
        error_code=result.error_code if result is not None else None,
        error_message=job.error_message or (result.error_message if result is not None else None),
        progress=[
            ProgressEventResponse(phase=event.phase, count=event.count)
            for event in job.progress.events()
        ],
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


def _require_current(harvest_service: HarvestService) -> HarvestJob:
    job = harvest_service.current()
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No harvest has been started.",
        )
    return job


# Declared before /harvests/{kind} so "stop" is not taken for a kind.
@router.post("/harvests/stop", response_model=HarvestJobResponse)
def stop_harvest(
    harvest_service: HarvestService = Depends(get_harvest_service),
) -> HarvestJobResponse:
    """
    Ask the running harvest to stop; it still returns what it has collected.
    """

    job = harvest_service.stop()
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No harvest is running.",
        )
    return _to_response(job)


@router.post(
    "/harvests/{kind}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=HarvestJobResponse,
)
def start_harvest(
    kind: str,
    payload: HarvestStartRequest,
    harvest_service: HarvestService = Depends(get_harvest_service),
) -> HarvestJobResponse:
    """
    Start a listing or detail harvest against the given page.
    """

    try:
        job = harvest_service.start(
            kind,
            url=payload.url,
            cap=payload.cap,
            speed=payload.speed,
            sort_order=payload.sort_order,
        )
    except HarvestInProgressError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return _to_response(job)


@router.get("/harvests/current", response_model=HarvestJobResponse)
def get_current_harvest(
    harvest_service: HarvestService = Depends(get_harvest_service),
) -> HarvestJobResponse:
    return _to_response(_require_current(harvest_service))


@router.get("/harvests/current/result.csv")
def download_current_result(
    harvest_service: HarvestService = Depends(get_harvest_service),
) -> StreamingResponse:
    job = _require_current(harvest_service)
    if job.is_running or job.result is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The current harvest has not produced a result yet.",
        )

    filename = result_filename(job.result)
    # Subject names can be non-ASCII; headers must stay latin-1.
    ascii_filename = filename.encode("ascii", "ignore").decode("ascii").strip() or "harvest.csv"
    return StreamingResponse(
        content=iter_csv_lines(job.result),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": (
                f"attachment; filename=\"{ascii_filename}\"; filename*=UTF-8''{quote(filename)}"
            )
        },
    )
