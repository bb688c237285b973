from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from presales_engine.components.base.exceptions import ComponentError
from presales_engine.utils.http_errors import status_code_for
from .models import AssessmentJob, AssessmentJobCreate, AssessmentJobSummary
from .service import AssessmentJobService

router = APIRouter(prefix="/assessment-jobs", tags=["Assessment Jobs"])


def get_service(request: Request) -> AssessmentJobService:
    return request.app.state.container.job_service


@router.post("", response_model=AssessmentJob, status_code=202)
async def create_job(
    payload: AssessmentJobCreate,
    service: AssessmentJobService = Depends(get_service),
) -> AssessmentJob:
    """Create an assessment job and queue it for processing."""
    try:
        return await service.create_job(payload)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())


@router.get("", response_model=List[AssessmentJobSummary])
async def list_jobs(
    limit: int = Query(50, ge=1, le=500),
    service: AssessmentJobService = Depends(get_service),
) -> List[AssessmentJobSummary]:
    """List jobs, newest first."""
    return await service.list_jobs(limit=limit)


@router.get("/{job_id}", response_model=AssessmentJob)
async def get_job(
    job_id: int,
    service: AssessmentJobService = Depends(get_service),
) -> AssessmentJob:
    """Get job status, step and stage outputs."""
    try:
        return await service.get_job(job_id)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())


@router.delete("/{job_id}", status_code=204)
async def delete_job(
    job_id: int,
    service: AssessmentJobService = Depends(get_service),
) -> None:
    try:
        await service.delete_job(job_id)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())


@router.post("/{job_id}/retry", response_model=AssessmentJob, status_code=202)
async def retry_job(
    job_id: int,
    service: AssessmentJobService = Depends(get_service),
) -> AssessmentJob:
    """Queue a failed job again, resuming at the stage that failed."""
    try:
        return await service.retry_job(job_id)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())
