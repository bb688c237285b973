from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from presales_engine.components.base.exceptions import ComponentError
from presales_engine.utils.http_errors import status_code_for
from .models import TimelineEstimationRecord, TimelineEstimationSummary
from .service import TimelineEstimatorService

router = APIRouter(prefix="/timeline-estimations", tags=["Timeline Estimation"])


def get_service(request: Request) -> TimelineEstimatorService:
    return request.app.state.container.timeline_service


@router.get("", response_model=List[TimelineEstimationSummary])
async def list_estimations(
    service: TimelineEstimatorService = Depends(get_service),
) -> List[TimelineEstimationSummary]:
    """List generated timeline estimations, newest first."""
    return await service.list_summaries()


@router.post("/{assessment_id}", response_model=TimelineEstimationRecord)
async def generate_estimation(
    assessment_id: int,
    service: TimelineEstimatorService = Depends(get_service),
) -> TimelineEstimationRecord:
    """Generate (or regenerate) the timeline estimation of a completed assessment."""
    try:
        return await service(assessment_id)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())


@router.get("/{assessment_id}", response_model=TimelineEstimationRecord)
async def get_estimation(
    assessment_id: int,
    service: TimelineEstimatorService = Depends(get_service),
) -> TimelineEstimationRecord:
    try:
        return await service.get(assessment_id)
    except ComponentError as e:
        raise HTTPException(status_code=status_code_for(e), detail=e.to_dict())
