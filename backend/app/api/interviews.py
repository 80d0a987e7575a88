"""Interview API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import get_current_user, require_reviewer
from backend.app.models.interview import InterviewStatus
from backend.app.models.user import User
from backend.app.services.interview_service import InterviewService
from backend.app.schemas.interview import InterviewCreateRequest, InterviewResponse, InterviewUpdateRequest

router = APIRouter()


async def get_interview_service(db: AsyncSession = Depends(get_db)) -> InterviewService:
    """Dependency to get interview service"""
    return InterviewService(db)


@router.post("", response_model=InterviewResponse, status_code=status.HTTP_201_CREATED)
async def schedule_interview(
    payload: InterviewCreateRequest,
    current_user: User = Depends(require_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    """
    Schedule a manager interview for a candidate

    The candidate must be in `manager_interview` or have completed every
    required training module.

    ## Error Responses

    - **400 Bad Request**: Candidate not ready, or no manager to interview
    - **403 Forbidden**: A manager scheduling outside their candidates
    - **404 Not Found**: Candidate not found
    """
    return await service.schedule(
        payload.candidate_id,
        payload.scheduled_at,
        current_user,
        manager_id=payload.manager_id,
        notes=payload.notes,
    )


@router.get("", response_model=List[InterviewResponse])
async def list_interviews(
    candidate_id: Optional[UUID] = Query(None),
    manager_id: Optional[UUID] = Query(None),
    interview_status: Optional[InterviewStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Interviews by date; candidates see their own, managers the ones they run"""
    return await service.list_for(
        current_user,
        candidate_id=candidate_id,
        manager_id=manager_id,
        status=interview_status,
        skip=skip,
        limit=limit,
    )


@router.get("/{interview_id}", response_model=InterviewResponse)
async def get_interview(
    interview_id: UUID,
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service)
):
    return await service.get_for(interview_id, current_user)


@router.put("/{interview_id}", response_model=InterviewResponse)
async def update_interview(
    interview_id: UUID,
    payload: InterviewUpdateRequest,
    current_user: User = Depends(require_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    """
    Reschedule, cancel, or record the outcome

    Setting `decision` marks the interview completed. The candidate's
    hiring status is changed separately through the application status
    endpoint.
    """
    return await service.update(interview_id, payload.model_dump(exclude_unset=True), current_user)
