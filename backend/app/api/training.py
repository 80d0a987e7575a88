"""Training API endpoints: candidate progress and module/video management"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import require_admin, require_candidate, require_staff
from backend.app.models.user import User
from backend.app.services.s3_service import S3Service, get_s3_service
from backend.app.services.training_service import TrainingService
from backend.app.schemas.assessment import CandidateQuestionResponse
from backend.app.schemas.progression import ModuleProgressResponse
from backend.app.schemas.training import (
    CandidateModuleResponse, ModuleCreateRequest, ModuleResponse, ModuleUpdateRequest,
    QuizResultResponse, QuizSubmitRequest, VideoCreateRequest, VideoProgressRequest,
    VideoProgressResponse, VideoResponse, VideoUpdateRequest,
)
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_training_service(
    db: AsyncSession = Depends(get_db),
    s3: S3Service = Depends(get_s3_service)
) -> TrainingService:
    """Dependency to get training service"""
    return TrainingService(db, s3)


# Candidate side

@router.get("/me/modules", response_model=List[ModuleProgressResponse])
async def list_my_modules(
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service),
    db: AsyncSession = Depends(get_db)
):
    """
    The candidate's required modules, in order, with progress and lock state

    A module unlocks once the module before it is completed: every video
    watched and, when it has one, the quiz passed.
    """
    _, state = await training.candidate_state(current_user)
    await db.commit()
    return [ModuleProgressResponse.from_progress(m) for m in state.training.modules]


@router.get("/me/modules/{module_id}", response_model=CandidateModuleResponse)
async def get_my_module(
    module_id: UUID,
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service),
    s3: S3Service = Depends(get_s3_service)
):
    """An unlocked module with playable video URLs; locked modules return 403"""
    module, progress = await training.get_module_for_candidate(current_user, module_id)

    payload = ModuleResponse.model_validate(module)
    payload.videos = [video for video in payload.videos if not video.archived]
    for video in payload.videos:
        video.url = await s3.generate_presigned_url(video.url)

    return CandidateModuleResponse(module=payload, progress=ModuleProgressResponse.from_progress(progress))


@router.get("/me/modules/{module_id}/quiz", response_model=List[CandidateQuestionResponse])
async def get_my_quiz(
    module_id: UUID,
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service)
):
    """Quiz questions for an unlocked module, without the answer key"""
    assessment = await training.get_quiz(current_user, module_id)
    return [CandidateQuestionResponse.model_validate(q) for q in assessment.questions]


@router.post("/me/modules/{module_id}/quiz", response_model=QuizResultResponse, status_code=status.HTTP_201_CREATED)
async def submit_my_quiz(
    module_id: UUID,
    payload: QuizSubmitRequest,
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service)
):
    """
    Submit quiz answers for grading

    Score is the percentage of correct answers, rounded; the quiz is passed
    at `PASSING_SCORE` (default 70). Every attempt is stored.
    """
    return await training.submit_quiz(current_user, module_id, payload.answers)


@router.get("/me/quiz-results", response_model=List[QuizResultResponse])
async def list_my_quiz_results(
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service)
):
    return await training.list_quiz_results(current_user)


@router.post("/me/videos/{video_id}/progress", response_model=VideoProgressResponse)
async def record_video_progress(
    video_id: UUID,
    payload: VideoProgressRequest,
    current_user: User = Depends(require_candidate),
    training: TrainingService = Depends(get_training_service)
):
    """
    Report watch progress on a video

    Idempotent: a completed video stays completed and repeated reports only
    add to the time spent.
    """
    return await training.record_video_progress(
        current_user, video_id, completed=payload.completed, time_spent=payload.time_spent
    )


# Content management

@router.get("/modules", response_model=List[ModuleResponse])
async def list_modules(
    include_archived: bool = Query(False),
    current_user: User = Depends(require_staff),
    training: TrainingService = Depends(get_training_service)
):
    return await training.list_modules(include_archived=include_archived)


@router.post("/modules", response_model=ModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    payload: ModuleCreateRequest,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    """Create a module; without `position` it goes to the end of the list"""
    return await training.create_module(payload.model_dump(), current_user)


@router.get("/modules/{module_id}", response_model=ModuleResponse)
async def get_module(
    module_id: UUID,
    current_user: User = Depends(require_staff),
    training: TrainingService = Depends(get_training_service)
):
    return await training.get_module(module_id)


@router.put("/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: UUID,
    payload: ModuleUpdateRequest,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    return await training.update_module(module_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    module_id: UUID,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    await training.delete_module(module_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/modules/{module_id}/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def add_video(
    module_id: UUID,
    payload: VideoCreateRequest,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    """Add an externally hosted video by URL"""
    return await training.create_video(module_id, payload.model_dump(), current_user)


@router.post("/modules/{module_id}/videos/upload", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    module_id: UUID,
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    description: Optional[str] = Form(None),
    duration: Optional[str] = Form(None, max_length=20),
    position: Optional[int] = Form(None, ge=0),
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    """
    Upload a training video file to object storage

    ## Example Usage

    ```bash
    curl -X POST "http://localhost:8000/api/v1/training/modules/<id>/videos/upload" \\
         -H "Authorization: Bearer <token>" \\
         -F "title=Knocking on the first door" \\
         -F "file=@intro.mp4"
    ```
    """
    data = {"title": title, "description": description, "duration": duration, "position": position}
    return await training.create_video(
        module_id,
        data,
        current_user,
        upload=(file.file, file.filename, file.content_type, file.size),
    )


@router.put("/videos/{video_id}", response_model=VideoResponse)
async def update_video(
    video_id: UUID,
    payload: VideoUpdateRequest,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    return await training.update_video(video_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: UUID,
    current_user: User = Depends(require_admin),
    training: TrainingService = Depends(get_training_service)
):
    """Delete a video; uploaded files are removed from object storage"""
    await training.delete_video(video_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
