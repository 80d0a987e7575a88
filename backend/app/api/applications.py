"""Job application API endpoints: listing, withdrawal and status transitions"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.exceptions import AuthorizationException
from backend.app.core.security import get_current_user, require_reviewer
from backend.app.models.candidate import CandidateStatus
from backend.app.models.user import User, UserRole
from backend.app.repositories.job_repository import JobRepository
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.progression import allowed_targets
from backend.app.schemas.job import ApplicationResponse, StatusChangeRequest, StatusHistoryResponse
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_pipeline_service(db: AsyncSession = Depends(get_db)) -> PipelineService:
    """Dependency to get pipeline service"""
    return PipelineService(db)


async def _visible_application(application_id: UUID, viewer: User, pipeline: PipelineService):
    application = await pipeline.get_application(application_id)
    if viewer.role == UserRole.CANDIDATE:
        if application.candidate_id != viewer.id:
            raise AuthorizationException("Cannot view another candidate's application")
    else:
        pipeline.ensure_can_view(viewer, await pipeline.get_candidate(application.candidate_id))
    return application


@router.get("", response_model=List[ApplicationResponse])
async def list_applications(
    candidate_id: Optional[UUID] = Query(None),
    job_id: Optional[UUID] = Query(None),
    application_status: Optional[CandidateStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List applications, most recently updated first

    Candidates always get their own applications; `candidate_id` is ignored.
    """
    if current_user.role == UserRole.CANDIDATE:
        candidate_id = current_user.id

    applications = await JobRepository(db).list_applications(
        candidate_id=candidate_id,
        job_id=job_id,
        status=application_status,
        skip=skip,
        limit=limit,
    )
    return [ApplicationResponse.from_application(app) for app in applications]


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    application = await _visible_application(application_id, current_user, pipeline)
    return ApplicationResponse.from_application(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_application(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """
    Withdraw an application

    Candidates withdraw their own applications; HR and admins can withdraw
    any. Training progress on the job's modules is cleared unless another
    of the candidate's applications still requires the same module.
    """
    if current_user.role not in (UserRole.CANDIDATE, UserRole.HR, UserRole.ADMIN):
        raise AuthorizationException("Only the candidate or HR can withdraw an application")

    await pipeline.withdraw(application_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{application_id}/transitions", response_model=List[CandidateStatus])
async def list_allowed_transitions(
    application_id: UUID,
    current_user: User = Depends(require_reviewer),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """Statuses the application can move to from where it is now"""
    application = await _visible_application(application_id, current_user, pipeline)
    return sorted(allowed_targets(application.status), key=lambda s: s.value)


@router.post("/{application_id}/status", response_model=ApplicationResponse)
async def change_application_status(
    application_id: UUID,
    payload: StatusChangeRequest,
    current_user: User = Depends(require_reviewer),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """
    Move an application through the hiring pipeline

    Only transitions in the pipeline's transition table are accepted.
    Moving from `training` to `manager_interview` also requires every
    required training module to be completed; an admin may pass
    `force: true` to skip that check.

    ## Error Responses

    - **403 Forbidden**: Candidate is outside a manager's scope
    - **409 Conflict**: Transition not allowed, training incomplete, or
      `expected_version` no longer matches the candidate
    """
    await _visible_application(application_id, current_user, pipeline)
    application = await pipeline.change_status(
        application_id,
        payload.status,
        actor=current_user,
        note=payload.note,
        force=payload.force,
        expected_version=payload.expected_version,
    )
    return ApplicationResponse.from_application(application)


@router.get("/{application_id}/history", response_model=List[StatusHistoryResponse])
async def get_application_history(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    await _visible_application(application_id, current_user, pipeline)
    return await pipeline.get_history(application_id)
