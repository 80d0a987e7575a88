"""Assessment service: authoring, attempts and review"""

import random
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from backend.app.core.logging import get_logger
from backend.app.models.assessment import Assessment, AssessmentResult, AssessmentSection, Question
from backend.app.models.base import utcnow
from backend.app.models.user import User, UserRole
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.assessment_repository import AssessmentRepository
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.progression import round_half_up

logger = get_logger(__name__)


def weighted_score(questions: List[Question], answers: Dict[UUID, int]) -> int:
    """Earned points over available points, as a rounded percentage"""
    total = sum(q.score or 0 for q in questions)
    if total <= 0:
        return 0
    earned = sum(q.score or 0 for q in questions if answers.get(q.id) == q.correct_answer)
    return round_half_up(earned / total * 100)


def ordered_questions(assessment: Assessment, seed: Optional[str] = None) -> List[Question]:
    """
    Questions in the order a candidate sees them

    With ``randomize_questions`` the order is shuffled within each section,
    deterministically for a given seed so reloading an attempt keeps it.
    """
    if not assessment.randomize_questions:
        return assessment.questions

    rng = random.Random(seed)
    ordered = []
    for section in assessment.sections:
        questions = list(section.questions)
        rng.shuffle(questions)
        ordered.extend(questions)
    return ordered


def validate_options(options: List[str], correct_answer: int) -> None:
    if len(options) < 2:
        raise ValidationException("A question needs at least two options")
    if not 0 <= correct_answer < len(options):
        raise ValidationException(
            "correct_answer must index into options",
            details={"correct_answer": correct_answer, "options": len(options)},
        )


class AssessmentService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = AssessmentRepository(db)
        self.activity = ActivityLogRepository(db)

    # Authoring

    async def get_assessment(self, assessment_id: UUID, refresh: bool = False) -> Assessment:
        assessment = await self.repo.get_by_id(assessment_id, refresh=refresh)
        if not assessment:
            raise NotFoundException(f"Assessment not found: {assessment_id}")
        return assessment

    async def list_assessments(self, include_archived: bool = False, skip: int = 0, limit: int = 100) -> List[Assessment]:
        return await self.repo.list_all(include_archived=include_archived, skip=skip, limit=limit)

    async def create_assessment(self, data: Dict[str, Any], actor: User) -> Assessment:
        """
        Create an assessment, optionally with sections and their questions

        ``data["sections"]`` is a list of ``{title, description, questions}``.
        """
        sections = data.pop("sections", None) or []
        assessment = await self.repo.create({**data, "created_by": actor.id})

        for section_data in sections:
            questions = section_data.get("questions") or []
            for question in questions:
                validate_options(question["options"], question["correct_answer"])
            section = await self.repo.add_section(assessment, section_data["title"], section_data.get("description"))
            if questions:
                await self.repo.add_questions(section, questions)

        await self.activity.log("assessment_created", "assessment", assessment.id, user_id=actor.id,
                                details={"title": assessment.title})
        await self.db.commit()
        return await self.get_assessment(assessment.id, refresh=True)

    async def update_assessment(self, assessment_id: UUID, updates: Dict[str, Any], actor: User) -> Assessment:
        assessment = await self.get_assessment(assessment_id)
        await self.repo.update(assessment, updates)
        await self.activity.log("assessment_updated", "assessment", assessment.id, user_id=actor.id,
                                details={"fields": sorted(updates)})
        await self.db.commit()
        return assessment

    async def delete_assessment(self, assessment_id: UUID, actor: User) -> None:
        assessment = await self.get_assessment(assessment_id)
        await self.repo.delete(assessment)
        await self.activity.log("assessment_deleted", "assessment", assessment_id, user_id=actor.id)
        await self.db.commit()

    async def add_section(self, assessment_id: UUID, title: str, description: Optional[str], actor: User) -> AssessmentSection:
        assessment = await self.get_assessment(assessment_id)
        section = await self.repo.add_section(assessment, title, description)
        await self.db.commit()
        return await self.get_section(section.id, refresh=True)

    async def get_section(self, section_id: UUID, refresh: bool = False) -> AssessmentSection:
        section = await self.repo.get_section(section_id, refresh=refresh)
        if not section:
            raise NotFoundException(f"Section not found: {section_id}")
        return section

    async def add_questions(self, section_id: UUID, questions: List[Dict[str, Any]], actor: User) -> List[Question]:
        section = await self.get_section(section_id)
        for question in questions:
            validate_options(question["options"], question["correct_answer"])

        rows = await self.repo.add_questions(section, questions)
        await self.activity.log("questions_added", "assessment_section", section.id, user_id=actor.id,
                                details={"count": len(rows)})
        await self.db.commit()
        return rows

    async def update_question(self, question_id: UUID, updates: Dict[str, Any], actor: User) -> Question:
        question = await self.repo.get_question(question_id)
        if not question:
            raise NotFoundException(f"Question not found: {question_id}")

        validate_options(
            updates.get("options", question.options),
            updates.get("correct_answer", question.correct_answer),
        )
        await self.repo.update(question, updates)
        await self.db.commit()
        return question

    async def delete_question(self, question_id: UUID, actor: User) -> None:
        question = await self.repo.get_question(question_id)
        if not question:
            raise NotFoundException(f"Question not found: {question_id}")
        await self.repo.delete(question)
        await self.db.commit()

    # Attempts

    async def _check_candidate_access(self, user: User, assessment: Assessment) -> None:
        """Candidates may only take assessments attached to a job they applied to"""
        candidate = await PipelineService(self.db).ensure_candidate(user)
        allowed = {
            linked.id
            for application in candidate.applications
            for linked in application.job.assessments
        }
        if assessment.id not in allowed:
            raise AuthorizationException("This assessment is not part of your application")

    async def start_attempt(self, assessment_id: UUID, user: User) -> AssessmentResult:
        """Open an attempt, or return the one already in progress"""
        assessment = await self.get_assessment(assessment_id)
        if assessment.archived:
            raise ValidationException("Assessment is archived")
        await self._check_candidate_access(user, assessment)

        attempt = await self.repo.find_open_result(assessment.id, user.id)
        if attempt is None:
            attempt = await self.repo.create_result(assessment.id, user.id)
            await self.activity.log("assessment_started", "assessment", assessment.id, user_id=user.id)
            await self.db.commit()
            attempt = await self.get_result(attempt.id)
        return attempt

    async def get_result(self, result_id: UUID) -> AssessmentResult:
        result = await self.repo.get_result(result_id)
        if not result:
            raise NotFoundException(f"Assessment result not found: {result_id}")
        return result

    async def get_result_for(self, result_id: UUID, viewer: User) -> AssessmentResult:
        result = await self.get_result(result_id)
        if viewer.role == UserRole.CANDIDATE and result.candidate_id != viewer.id:
            raise AuthorizationException("Cannot view another candidate's result")
        return result

    async def submit_attempt(
        self,
        result_id: UUID,
        user: User,
        answers: Dict[UUID, int],
        answer_timings: Optional[Dict[UUID, float]] = None,
    ) -> AssessmentResult:
        attempt = await self.get_result_for(result_id, user)
        if attempt.completed:
            raise ConflictException("Assessment already submitted")

        assessment = await self.get_assessment(attempt.assessment_id)
        questions = assessment.questions
        if not questions:
            raise ValidationException("Assessment has no questions")

        known = {q.id for q in questions}
        unknown = [str(question_id) for question_id in answers if question_id not in known]
        if unknown:
            raise ValidationException("Answers reference unknown questions", details={"question_ids": unknown})

        attempt.score = weighted_score(questions, answers)
        attempt.answers = {str(k): v for k, v in answers.items()}
        attempt.answer_timings = {str(k): v for k, v in (answer_timings or {}).items()}
        attempt.completed = True
        attempt.completed_at = utcnow()

        await self.activity.log("assessment_submitted", "assessment", assessment.id, user_id=user.id,
                                details={"score": attempt.score, "result_id": str(attempt.id)})
        await self.db.commit()

        logger.info(f"Assessment {assessment.id} scored {attempt.score}", extra={"user_id": str(user.id)})
        return attempt

    async def list_results(self, viewer: User, **filters) -> List[AssessmentResult]:
        if viewer.role == UserRole.CANDIDATE:
            filters["candidate_id"] = viewer.id
        return await self.repo.list_results(**filters)

    async def add_feedback(self, result_id: UUID, feedback: str, reviewer: User) -> AssessmentResult:
        result = await self.get_result(result_id)
        result.feedback = feedback
        result.reviewed_by = reviewer.id
        result.reviewed_at = utcnow()

        await self.activity.log("assessment_reviewed", "assessment_result", result.id, user_id=reviewer.id)
        await self.db.commit()
        return result
