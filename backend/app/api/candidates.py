"""Candidate API endpoints: own profile, asset uploads, hiring state and staff search"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.database import get_db
from backend.app.core.exceptions import NotFoundException, ValidationException
from backend.app.core.security import get_current_candidate, require_candidate, require_hr, require_staff
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.user import Region, User
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.s3_service import AssetKind, S3Service, get_s3_service
from backend.app.schemas.candidate import (
    AssetUploadResponse, AssetUrlResponse, CandidateListResponse, CandidateProfileUpdate,
    CandidateResponse, ManagerAssignment,
)
from backend.app.schemas.progression import HiringStateResponse
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

CANDIDATE_ASSETS = (AssetKind.RESUME, AssetKind.ABOUT_ME_VIDEO, AssetKind.SALES_PITCH_VIDEO)


async def get_pipeline_service(db: AsyncSession = Depends(get_db)) -> PipelineService:
    """Dependency to get pipeline service"""
    return PipelineService(db)


def _candidate_asset(kind: AssetKind) -> AssetKind:
    if kind not in CANDIDATE_ASSETS:
        raise ValidationException(
            f"Not a candidate asset: {kind.value}",
            details={"allowed": [k.value for k in CANDIDATE_ASSETS]},
        )
    return kind


async def _asset_url(candidate: Candidate, kind: AssetKind, s3: S3Service) -> AssetUrlResponse:
    key = getattr(candidate, _candidate_asset(kind).value)
    if not key:
        raise NotFoundException(f"No {kind.value} uploaded")
    return AssetUrlResponse(
        kind=kind.value,
        url=await s3.generate_presigned_url(key),
        expires_in=settings.PRESIGNED_URL_EXPIRATION,
    )


# Candidate self-service

@router.get("/me", response_model=CandidateResponse)
async def get_my_profile(
    candidate: Candidate = Depends(get_current_candidate),
    db: AsyncSession = Depends(get_db)
):
    await db.commit()
    return CandidateResponse.from_candidate(candidate)


@router.put("/me", response_model=CandidateResponse)
async def update_my_profile(
    profile: CandidateProfileUpdate,
    current_user: User = Depends(require_candidate),
    candidate: Candidate = Depends(get_current_candidate),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """Update phone, location and region"""
    candidate = await pipeline.update_profile(candidate, profile.model_dump(exclude_unset=True), current_user)
    return CandidateResponse.from_candidate(candidate)


@router.post("/me/assets/{kind}", response_model=AssetUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_asset(
    kind: AssetKind,
    file: UploadFile = File(...),
    current_user: User = Depends(require_candidate),
    candidate: Candidate = Depends(get_current_candidate),
    pipeline: PipelineService = Depends(get_pipeline_service),
    s3: S3Service = Depends(get_s3_service)
):
    """
    Upload the resume, the about-me video or the sales-pitch video

    ## File Requirements

    - **resume**: PDF, DOC or DOCX, up to `MAX_DOCUMENT_SIZE`
    - **about_me_video / sales_pitch_video**: MP4, MOV, WEBM or M4V, up to `MAX_VIDEO_SIZE`

    The first upload moves a new candidate from `profile_created` to
    `application_in_progress`.

    ## Example Usage

    ```bash
    curl -X POST "http://localhost:8000/api/v1/candidates/me/assets/resume" \\
         -H "Authorization: Bearer <token>" \\
         -F "file=@resume.pdf"
    ```
    """
    kind = _candidate_asset(kind)

    key = await s3.upload_asset(kind, str(candidate.id), file.file, file.filename, file.content_type, file.size)
    candidate = await pipeline.update_profile(candidate, {kind.value: key}, current_user)

    logger.info(f"Candidate uploaded {kind.value}", extra={"candidate_id": str(candidate.id)})
    return AssetUploadResponse(
        kind=kind.value,
        key=key,
        url=await s3.generate_presigned_url(key),
        status=candidate.status,
    )


@router.get("/me/assets/{kind}/url", response_model=AssetUrlResponse)
async def get_my_asset_url(
    kind: AssetKind,
    candidate: Candidate = Depends(get_current_candidate),
    s3: S3Service = Depends(get_s3_service)
):
    return await _asset_url(candidate, kind, s3)


@router.get("/me/hiring-state", response_model=HiringStateResponse)
async def get_my_hiring_state(
    candidate: Candidate = Depends(get_current_candidate),
    pipeline: PipelineService = Depends(get_pipeline_service),
    db: AsyncSession = Depends(get_db)
):
    """
    The candidate's position in the hiring pipeline

    Returns the current step (1-5) with the state of every step, the
    training progress per required module, what is still missing from the
    application, and the status badge to display.
    """
    state = await pipeline.hiring_state(candidate)
    await db.commit()
    return HiringStateResponse.from_state(state, candidate.id)


# Staff

@router.get("", response_model=CandidateListResponse)
async def search_candidates(
    query: Optional[str] = Query(None, description="Search over name, email and username"),
    candidate_status: Optional[CandidateStatus] = Query(None, alias="status"),
    region: Optional[Region] = Query(None),
    job_id: Optional[UUID] = Query(None),
    sort: str = Query("created_at", pattern="^(created_at|updated_at|current_step|status|name)$"),
    descending: bool = Query(True),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(require_staff),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """
    Search candidates

    Managers only see candidates assigned to them or in their region.
    """
    filters = {"query": query, "status": candidate_status, "region": region, "job_id": job_id}
    candidates = await pipeline.search_candidates(
        current_user, **filters, sort=sort, descending=descending, skip=skip, limit=limit
    )
    total = await pipeline.count_candidates(current_user, **filters)

    return CandidateListResponse(
        candidates=[CandidateResponse.from_candidate(c) for c in candidates],
        total=total,
        skip=skip,
        limit=limit,
        has_more=skip + len(candidates) < total,
    )


@router.get("/pending", response_model=List[CandidateResponse])
async def list_pending_candidates(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_hr),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    """Candidates who have not applied to any job yet"""
    candidates = await pipeline.list_pending(skip=skip, limit=limit)
    return [CandidateResponse.from_candidate(c) for c in candidates]


@router.get("/{candidate_id}", response_model=CandidateResponse)
async def get_candidate(
    candidate_id: UUID,
    current_user: User = Depends(require_staff),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    candidate = await pipeline.get_candidate(candidate_id)
    pipeline.ensure_can_view(current_user, candidate)
    return CandidateResponse.from_candidate(candidate)


@router.get("/{candidate_id}/hiring-state", response_model=HiringStateResponse)
async def get_candidate_hiring_state(
    candidate_id: UUID,
    current_user: User = Depends(require_staff),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    candidate = await pipeline.get_candidate(candidate_id)
    pipeline.ensure_can_view(current_user, candidate)
    state = await pipeline.get_hiring_state(candidate_id)
    return HiringStateResponse.from_state(state, candidate_id)


@router.get("/{candidate_id}/assets/{kind}/url", response_model=AssetUrlResponse)
async def get_candidate_asset_url(
    candidate_id: UUID,
    kind: AssetKind,
    current_user: User = Depends(require_staff),
    pipeline: PipelineService = Depends(get_pipeline_service),
    s3: S3Service = Depends(get_s3_service)
):
    """Presigned download URL for a candidate's resume or video"""
    candidate = await pipeline.get_candidate(candidate_id)
    pipeline.ensure_can_view(current_user, candidate)
    return await _asset_url(candidate, kind, s3)


@router.put("/{candidate_id}/manager", response_model=CandidateResponse)
async def assign_manager(
    candidate_id: UUID,
    payload: ManagerAssignment,
    current_user: User = Depends(require_hr),
    pipeline: PipelineService = Depends(get_pipeline_service)
):
    candidate = await pipeline.assign_manager(candidate_id, payload.manager_id, current_user)
    return CandidateResponse.from_candidate(candidate)
