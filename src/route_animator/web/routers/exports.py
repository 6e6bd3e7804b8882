from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from route_animator.exceptions import ExportValidationError, JobNotFoundError
from route_animator.web.dependencies import get_orchestrator
from route_animator.web.schemas import ExportAccepted, ExportRequest
from route_animator.web.utils.files import resolve_export_file
from route_animator.web.workers import JobSnapshot, JobStatus
from route_animator.web.workers.export import ExportOrchestrator

router = APIRouter(
    prefix="/exports",
    tags=["exports"],
)

Orchestrator = Annotated[ExportOrchestrator, Depends(get_orchestrator)]


def _snapshot_or_404(orchestrator: ExportOrchestrator, job_id: str) -> JobSnapshot:
    try:
        return orchestrator.get_status(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        ) from exc


@router.post(
    "/video",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ExportAccepted,
)
async def export_video(body: ExportRequest, orchestrator: Orchestrator) -> ExportAccepted:
    """Queue an export job and return its id for polling."""
    try:
        job_id = orchestrator.submit(
            body.routes,
            body.settings,
            body.total_duration_ms,
            body.background_image,
            easing=body.easing,
        )
    except ExportValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    return ExportAccepted(job_id=job_id)


@router.get("/video/{job_id}/status")
async def export_video_status(job_id: str, orchestrator: Orchestrator) -> dict:
    return _snapshot_or_404(orchestrator, job_id).to_dict()


@router.get("/video/{job_id}/result")
async def export_video_result(job_id: str, orchestrator: Orchestrator) -> FileResponse:
    snapshot = _snapshot_or_404(orchestrator, job_id)
    if snapshot.status is not JobStatus.COMPLETED or snapshot.output_ref is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not ready",
        )
    path = resolve_export_file(orchestrator.export_folder, snapshot.output_ref)
    return FileResponse(path, media_type=snapshot.media_type, filename=path.name)


@router.delete("/video/{job_id}")
async def cancel_export(job_id: str, orchestrator: Orchestrator) -> dict:
    """Request cancellation of a queued or running job."""
    try:
        cancelled = orchestrator.cancel(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        ) from exc
    return {"jobId": job_id, "cancelled": cancelled}


@router.get("/list")
async def exports_list(orchestrator: Orchestrator) -> dict:
    """Return every job the server still remembers."""
    return {"jobs": [snapshot.to_dict() for snapshot in orchestrator.list_jobs()]}


__all__ = ["router"]
