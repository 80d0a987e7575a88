"""Job management API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import (
    get_current_candidate, get_current_user, require_candidate, require_hr, require_staff,
)
from backend.app.models.job import JobStatus
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.user import User
from backend.app.repositories.job_repository import JobRepository
from backend.app.services.job_service import JobService
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.training_service import TrainingService
from backend.app.schemas.job import (
    ApplicationResponse, CandidateTrainingReportResponse, JobCreateRequest, JobListResponse,
    JobResponse, JobUpdateRequest,
)
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_job_service(db: AsyncSession = Depends(get_db)) -> JobService:
    """Dependency to get job service"""
    return JobService(db)


def _page(jobs, total: int, skip: int, limit: int) -> JobListResponse:
    return JobListResponse(
        jobs=[JobResponse.from_job(job) for job in jobs],
        total=total,
        skip=skip,
        limit=limit,
        has_more=skip + len(jobs) < total,
    )


@router.get("/public", response_model=JobListResponse)
async def list_public_jobs(
    query: Optional[str] = Query(None, description="Text search over title, description and department"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    job_service: JobService = Depends(get_job_service)
):
    """
    Public job board

    No authentication. Only active, public, non-archived jobs are listed.
    """
    jobs, total = await job_service.search_jobs(query=query, public_only=True, skip=skip, limit=limit)
    return _page(jobs, total, skip, limit)


@router.get("/public/{job_id}", response_model=JobResponse)
async def get_public_job(
    job_id: UUID,
    job_service: JobService = Depends(get_job_service)
):
    return JobResponse.from_job(await job_service.get_public_job(job_id))


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    job_data: JobCreateRequest,
    current_user: User = Depends(require_hr),
    job_service: JobService = Depends(get_job_service)
):
    """
    Create a new job posting

    **Requirements:**
    - User must have hr or admin role
    - `training_module_ids` lists the modules applicants must complete;
      an empty list means every active module is required
    - `assessment_ids` lists the assessments applicants may take
    """
    logger.info(f"Job creation request from user {current_user.id}: {job_data.title}")
    job = await job_service.create_job(job_data.model_dump(), current_user)
    return JobResponse.from_job(job)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    query: Optional[str] = Query(None),
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    include_archived: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_staff),
    job_service: JobService = Depends(get_job_service)
):
    """List jobs for staff, including private and inactive ones"""
    jobs, total = await job_service.search_jobs(
        query=query,
        status=job_status,
        include_archived=include_archived,
        skip=skip,
        limit=limit,
    )
    return _page(jobs, total, skip, limit)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job_details(
    job_id: UUID,
    current_user: User = Depends(get_current_user),
    job_service: JobService = Depends(get_job_service)
):
    """
    Get job details by ID

    Candidates only see jobs that are on the public board.
    """
    if current_user.is_staff:
        job = await job_service.get_job(job_id)
    else:
        job = await job_service.get_public_job(job_id)
    return JobResponse.from_job(job)


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: UUID,
    job_data: JobUpdateRequest,
    current_user: User = Depends(require_hr),
    job_service: JobService = Depends(get_job_service)
):
    """
    Update a job

    Only the fields present in the body change. Passing
    `training_module_ids` or `assessment_ids` replaces the whole list.
    Set `archived: true` to retire a job that already has applications.
    """
    job = await job_service.update_job(job_id, job_data.model_dump(exclude_unset=True), current_user)
    return JobResponse.from_job(job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: UUID,
    current_user: User = Depends(require_hr),
    job_service: JobService = Depends(get_job_service)
):
    """Delete a job; returns 409 when it has applications"""
    await job_service.delete_job(job_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{job_id}/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    job_id: UUID,
    current_user: User = Depends(require_candidate),
    candidate: Candidate = Depends(get_current_candidate),
    db: AsyncSession = Depends(get_db)
):
    """
    Apply to a job

    The candidate's application profile must be complete: resume, both
    videos, phone and location. An incomplete profile returns 400 with
    `details.missing_fields`.

    ## Error Responses

    - **400 Bad Request**: Profile incomplete or job closed
    - **404 Not Found**: No such job
    - **409 Conflict**: Already applied, or already hired
    """
    application = await PipelineService(db).apply(candidate, job_id, current_user)
    return ApplicationResponse.from_application(application)


@router.get("/{job_id}/applications", response_model=List[ApplicationResponse])
async def list_job_applications(
    job_id: UUID,
    application_status: Optional[CandidateStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_staff),
    job_service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db)
):
    await job_service.get_job(job_id)
    applications = await JobRepository(db).list_applications(
        job_id=job_id, status=application_status, skip=skip, limit=limit
    )
    return [ApplicationResponse.from_application(app) for app in applications]


@router.get("/{job_id}/training-report", response_model=List[CandidateTrainingReportResponse])
async def get_training_report(
    job_id: UUID,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """
    Training progress of every applicant on this job's required modules

    Per module: videos watched, quiz passed, progress as completed items over
    total items, time spent, earliest start, and the latest completion once
    the module is at 100%.
    """
    reports = await TrainingService(db).job_training_report(job_id)
    return [CandidateTrainingReportResponse.model_validate(report) for report in reports]
