"""Training service: module content, candidate progress and quizzes"""

from typing import Any, BinaryIO, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from backend.app.core.logging import get_logger
from backend.app.models.assessment import Assessment
from backend.app.models.candidate import Candidate
from backend.app.models.training import QuizResult, TrainingModule, Video, VideoProgress
from backend.app.models.user import User
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.assessment_repository import AssessmentRepository
from backend.app.repositories.job_repository import JobRepository
from backend.app.repositories.training_repository import TrainingRepository
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.progression import (
    CandidateTrainingReport,
    HiringState,
    ModuleContent,
    ModuleProgress,
    build_training_report,
    round_half_up,
)
from backend.app.services.s3_service import AssetKind, S3Service

logger = get_logger(__name__)


def grade_quiz(questions, answers: Dict[UUID, int], passing_score: int) -> Tuple[int, int, bool]:
    """
    Grade multiple-choice answers

    Args:
        questions: Question rows with ``id`` and ``correct_answer``
        answers: Chosen option index per question id
        passing_score: Minimum score, in percent, to pass

    Returns:
        (score percent, number correct, passed)
    """
    if not questions:
        raise ValidationException("Quiz has no questions")

    correct = sum(1 for q in questions if answers.get(q.id) == q.correct_answer)
    score = round_half_up(correct / len(questions) * 100)
    return score, correct, score >= passing_score


class TrainingService:

    def __init__(self, db: AsyncSession, s3: Optional[S3Service] = None):
        self.db = db
        self.s3 = s3
        self.repo = TrainingRepository(db)
        self.pipeline = PipelineService(db)
        self.activity = ActivityLogRepository(db)

    # Candidate side

    async def candidate_state(self, user: User) -> Tuple[Candidate, HiringState]:
        candidate = await self.pipeline.ensure_candidate(user)
        state = await self.pipeline.hiring_state(candidate)
        return candidate, state

    async def _unlocked_module(self, user: User, module_id: UUID) -> Tuple[Candidate, ModuleProgress]:
        """
        The candidate's progress on a module they are allowed to work on

        Raises:
            AuthorizationException: Training is not open yet, or the module is locked
            NotFoundException: The module is not part of the candidate's training
        """
        candidate, state = await self.candidate_state(user)
        if not state.can_access_training:
            raise AuthorizationException("Training is not available at your current stage")

        for module in state.training.modules:
            if module.module_id == module_id:
                if module.locked:
                    raise AuthorizationException("Complete the previous module first")
                return candidate, module

        raise NotFoundException(f"Training module not found: {module_id}")

    async def get_module_for_candidate(self, user: User, module_id: UUID) -> Tuple[TrainingModule, ModuleProgress]:
        _, progress = await self._unlocked_module(user, module_id)
        module = await self.get_module(module_id)
        return module, progress

    async def record_video_progress(
        self,
        user: User,
        video_id: UUID,
        completed: bool = True,
        time_spent: int = 0,
    ) -> VideoProgress:
        """Mark a video watched; repeated calls only add time spent"""
        video = await self.repo.get_video(video_id)
        if not video or video.archived:
            raise NotFoundException(f"Video not found: {video_id}")

        candidate, _ = await self._unlocked_module(user, video.module_id)

        progress = await self.repo.upsert_video_progress(user.id, video, completed, time_spent)
        await self.pipeline.hiring_state(candidate)
        await self.db.commit()

        logger.info(
            f"Video {video_id} progress recorded (completed={progress.completed})",
            extra={"user_id": str(user.id)},
        )
        return progress

    async def _quiz_for(self, module: TrainingModule) -> Assessment:
        if module.quiz_assessment_id is None:
            raise ValidationException("This module has no quiz")

        assessment = await AssessmentRepository(self.db).get_by_id(module.quiz_assessment_id)
        if not assessment:
            raise NotFoundException("Quiz assessment not found")
        return assessment

    async def get_quiz(self, user: User, module_id: UUID) -> Assessment:
        await self._unlocked_module(user, module_id)
        return await self._quiz_for(await self.get_module(module_id))

    async def submit_quiz(self, user: User, module_id: UUID, answers: Dict[UUID, int]) -> QuizResult:
        """
        Grade and store a module quiz attempt

        Every attempt is kept; a module counts as passed once any attempt passed.
        """
        candidate, _ = await self._unlocked_module(user, module_id)
        module = await self.get_module(module_id)
        assessment = await self._quiz_for(module)

        questions = assessment.questions
        score, correct, passed = grade_quiz(questions, answers, settings.PASSING_SCORE)

        result = await self.repo.add_quiz_result({
            "user_id": user.id,
            "module_id": module.id,
            "score": score,
            "total_questions": len(questions),
            "passed": passed,
            "answers": {str(question_id): choice for question_id, choice in answers.items()},
        })

        await self.pipeline.hiring_state(candidate)
        await self.activity.log(
            "quiz_submitted", "training_module", module.id, user_id=user.id,
            details={"score": score, "correct": correct, "passed": passed},
        )
        await self.db.commit()

        logger.info(f"Quiz for module {module.module} scored {score}", extra={"user_id": str(user.id)})
        return result

    async def list_quiz_results(self, user: User) -> List[QuizResult]:
        return await self.repo.list_quiz_results([user.id])

    # Content management

    async def list_modules(self, include_archived: bool = False) -> List[TrainingModule]:
        return await self.repo.list_modules(include_archived=include_archived)

    async def get_module(self, module_id: UUID, refresh: bool = False) -> TrainingModule:
        module = await self.repo.get_module(module_id, refresh=refresh)
        if not module:
            raise NotFoundException(f"Training module not found: {module_id}")
        return module

    async def _check_quiz(self, assessment_id: Optional[UUID]) -> None:
        if assessment_id is not None and not await AssessmentRepository(self.db).get_by_id(assessment_id):
            raise ValidationException("Quiz assessment does not exist")

    async def create_module(self, data: Dict[str, Any], actor: User) -> TrainingModule:
        if await self.repo.get_module_by_slug(data["module"]):
            raise ConflictException(f"Module slug already in use: {data['module']}")
        await self._check_quiz(data.get("quiz_assessment_id"))

        if data.get("position") is None:
            data["position"] = await self.repo.next_module_position()

        module = await self.repo.create_module({**data, "created_by": actor.id})
        await self.activity.log("module_created", "training_module", module.id, user_id=actor.id,
                                details={"module": module.module})
        await self.db.commit()
        return await self.get_module(module.id, refresh=True)

    async def update_module(self, module_id: UUID, updates: Dict[str, Any], actor: User) -> TrainingModule:
        module = await self.get_module(module_id)

        slug = updates.get("module")
        if slug and slug != module.module and await self.repo.get_module_by_slug(slug):
            raise ConflictException(f"Module slug already in use: {slug}")
        if "quiz_assessment_id" in updates:
            await self._check_quiz(updates["quiz_assessment_id"])

        await self.repo.update(module, updates)
        await self.activity.log("module_updated", "training_module", module.id, user_id=actor.id,
                                details={"fields": sorted(updates)})
        await self.db.commit()
        return module

    async def delete_module(self, module_id: UUID, actor: User) -> None:
        module = await self.get_module(module_id)
        await self.repo.delete(module)
        await self.activity.log("module_deleted", "training_module", module_id, user_id=actor.id,
                                details={"module": module.module})
        await self.db.commit()

    async def get_video(self, video_id: UUID) -> Video:
        video = await self.repo.get_video(video_id)
        if not video:
            raise NotFoundException(f"Video not found: {video_id}")
        return video

    async def create_video(
        self,
        module_id: UUID,
        data: Dict[str, Any],
        actor: User,
        upload: Optional[Tuple[BinaryIO, str, Optional[str], Optional[int]]] = None,
    ) -> Video:
        """
        Add a video to a module

        Either ``data["url"]`` points at an external video or ``upload``
        (file, filename, content type, size) is stored in S3.
        """
        module = await self.get_module(module_id)

        if upload is not None:
            if self.s3 is None:
                raise ValidationException("File uploads are not configured")
            file_obj, filename, content_type, size = upload
            data["url"] = await self.s3.upload_asset(
                AssetKind.TRAINING_VIDEO, str(module.id), file_obj, filename, content_type, size
            )
            data.setdefault("file_size", size)

        if not data.get("url"):
            raise ValidationException("A video URL or file is required")

        if data.get("position") is None:
            data["position"] = await self.repo.next_video_position(module.id)

        video = await self.repo.create_video({**data, "module_id": module.id, "created_by": actor.id})
        await self.activity.log("video_created", "video", video.id, user_id=actor.id,
                                details={"module_id": str(module.id), "title": video.title})
        await self.db.commit()
        return video

    async def update_video(self, video_id: UUID, updates: Dict[str, Any], actor: User) -> Video:
        video = await self.get_video(video_id)
        moved = "module_id" in updates and updates["module_id"] != video.module_id
        if moved:
            await self.get_module(updates["module_id"])

        await self.repo.update(video, updates)
        if moved:
            await self.repo.move_video_progress(video.id, video.module_id)
        await self.activity.log("video_updated", "video", video.id, user_id=actor.id,
                                details={"fields": sorted(updates)})
        await self.db.commit()
        return video

    async def delete_video(self, video_id: UUID, actor: User) -> None:
        video = await self.get_video(video_id)
        stored_key = video.url if not video.url.startswith(("http://", "https://")) else None

        await self.repo.delete(video)
        await self.activity.log("video_deleted", "video", video_id, user_id=actor.id)
        await self.db.commit()

        if stored_key and self.s3 is not None:
            await self.s3.delete_object(stored_key)

    # Reporting

    async def job_training_report(self, job_id: UUID) -> List[CandidateTrainingReport]:
        """Training progress of every applicant to a job on that job's modules"""
        job = await JobRepository(self.db).get_by_id(job_id)
        if not job:
            raise NotFoundException(f"Job not found: {job_id}")

        applications = await JobRepository(self.db).list_applications(job_id=job.id, limit=1000)
        candidate_ids = [app.candidate_id for app in applications]
        if not candidate_ids:
            return []

        modules = [ModuleContent.from_module(m) for m in await self.pipeline.required_modules(job)]
        module_ids = [m.module_id for m in modules]

        video_rows = await self.repo.list_video_progress(candidate_ids, module_ids)
        quiz_rows = await self.repo.list_quiz_results(candidate_ids, module_ids)
        names = {user.id: user.name or user.username for user in await UserRepository(self.db).get_many(candidate_ids)}

        reports = []
        for candidate_id in candidate_ids:
            reports.append(build_training_report(
                candidate_id,
                names.get(candidate_id),
                modules,
                [row for row in video_rows if row.user_id == candidate_id],
                [row for row in quiz_rows if row.user_id == candidate_id],
            ))
        return reports
