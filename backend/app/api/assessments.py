"""Assessment API endpoints: authoring, candidate attempts, review and AI question generation"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.database import get_db
from backend.app.core.security import get_current_user, require_candidate, require_hr, require_reviewer, require_staff
from backend.app.models.assessment import AssessmentResult
from backend.app.models.user import User
from backend.app.repositories.assessment_repository import AssessmentRepository
from backend.app.services.assessment_service import AssessmentService, ordered_questions
from backend.app.services.question_generator import QuestionGenerator, get_question_generator
from backend.app.schemas.assessment import (
    AssessmentCreateRequest, AssessmentResponse, AssessmentResultResponse, AssessmentStatsResponse,
    AssessmentUpdateRequest, AttemptResponse, AttemptSubmitRequest, CandidateQuestionResponse,
    FeedbackRequest, GenerateQuestionsRequest, GenerateQuestionsResponse, QuestionCreate,
    QuestionResponse, QuestionUpdate, SectionCreate, SectionResponse,
)
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_assessment_service(db: AsyncSession = Depends(get_db)) -> AssessmentService:
    """Dependency to get assessment service"""
    return AssessmentService(db)


async def _attempt_view(result: AssessmentResult, service: AssessmentService) -> AttemptResponse:
    assessment = await service.get_assessment(result.assessment_id)
    questions = ordered_questions(assessment, seed=str(result.id))
    return AttemptResponse(
        result_id=result.id,
        assessment_id=assessment.id,
        title=assessment.title,
        time_limit=assessment.time_limit,
        prevent_backtracking=assessment.prevent_backtracking,
        started_at=result.started_at,
        completed=result.completed,
        questions=[CandidateQuestionResponse.model_validate(q) for q in questions],
    )


# Static paths first so they are not captured by /{assessment_id}

@router.post("/generate-questions", response_model=GenerateQuestionsResponse)
async def generate_questions(
    payload: GenerateQuestionsRequest,
    current_user: User = Depends(require_hr),
    generator: QuestionGenerator = Depends(get_question_generator),
    service: AssessmentService = Depends(get_assessment_service)
):
    """
    Generate multiple-choice questions with an LLM

    Each generated question has exactly four options, a 0-based
    `correct_answer` and an explanation. With `section_id` the questions
    are also saved into that section, one point each.

    ## Error Responses

    - **422 Unprocessable Entity**: Missing or invalid topic, `num_questions` outside 1-20
    - **500 Internal Server Error**: No API key configured, API failure, or unusable output

    ## Example Usage

    ```bash
    curl -X POST "http://localhost:8000/api/v1/assessments/generate-questions" \\
         -H "Authorization: Bearer <token>" \\
         -H "Content-Type: application/json" \\
         -d '{"topic": "Objection handling", "difficulty": "beginner", "num_questions": 5}'
    ```
    """
    if payload.section_id is not None:
        await service.get_section(payload.section_id)

    generated = await generator.generate(payload.topic, payload.difficulty, payload.num_questions)

    saved = []
    if payload.section_id is not None:
        saved = await service.add_questions(
            payload.section_id,
            [{**question.model_dump(), "score": 1} for question in generated.questions],
            current_user,
        )

    logger.info(f"Generated {len(generated.questions)} questions on {payload.topic}")
    return GenerateQuestionsResponse(
        questions=generated.questions,
        saved=[QuestionResponse.model_validate(q) for q in saved],
    )


@router.get("/stats", response_model=AssessmentStatsResponse)
async def get_assessment_stats(
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """Average score and pass rate over all completed attempts"""
    return await AssessmentRepository(db).score_stats(settings.PASSING_SCORE)


@router.get("/results", response_model=List[AssessmentResultResponse])
async def list_results(
    assessment_id: Optional[UUID] = Query(None),
    candidate_id: Optional[UUID] = Query(None),
    completed_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Attempts, newest first; candidates only ever see their own"""
    return await service.list_results(
        current_user,
        assessment_id=assessment_id,
        candidate_id=candidate_id,
        completed_only=completed_only,
        skip=skip,
        limit=limit,
    )


@router.get("/results/{result_id}", response_model=AssessmentResultResponse)
async def get_result(
    result_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.get_result_for(result_id, current_user)


@router.get("/results/{result_id}/attempt", response_model=AttemptResponse)
async def resume_attempt(
    result_id: UUID,
    current_user: User = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Questions of an attempt in the same order as when it was started"""
    result = await service.get_result_for(result_id, current_user)
    return await _attempt_view(result, service)


@router.post("/results/{result_id}/submit", response_model=AssessmentResultResponse)
async def submit_attempt(
    result_id: UUID,
    payload: AttemptSubmitRequest,
    current_user: User = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service)
):
    """
    Submit answers for an open attempt

    Score is earned points over available points, as a rounded percentage.
    Unanswered questions earn nothing. A second submission returns 409.
    """
    return await service.submit_attempt(result_id, current_user, payload.answers, payload.answer_timings)


@router.put("/results/{result_id}/feedback", response_model=AssessmentResultResponse)
async def add_feedback(
    result_id: UUID,
    payload: FeedbackRequest,
    current_user: User = Depends(require_reviewer),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.add_feedback(result_id, payload.feedback, current_user)


@router.post("/sections/{section_id}/questions", response_model=List[QuestionResponse], status_code=status.HTTP_201_CREATED)
async def add_questions(
    section_id: UUID,
    payload: List[QuestionCreate],
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.add_questions(section_id, [q.model_dump() for q in payload], current_user)


@router.put("/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: UUID,
    payload: QuestionUpdate,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.update_question(question_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    question_id: UUID,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    await service.delete_question(question_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Assessments

@router.get("", response_model=List[AssessmentResponse])
async def list_assessments(
    include_archived: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_staff),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.list_assessments(include_archived=include_archived, skip=skip, limit=limit)


@router.post("", response_model=AssessmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assessment(
    payload: AssessmentCreateRequest,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    """
    Create an assessment, optionally with its sections and questions

    Every question's `correct_answer` must index into its `options`;
    `score` is the points a correct answer earns.
    """
    return await service.create_assessment(payload.model_dump(), current_user)


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: UUID,
    current_user: User = Depends(require_staff),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Full assessment including the answer key; staff only"""
    return await service.get_assessment(assessment_id)


@router.put("/{assessment_id}", response_model=AssessmentResponse)
async def update_assessment(
    assessment_id: UUID,
    payload: AssessmentUpdateRequest,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    return await service.update_assessment(assessment_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assessment(
    assessment_id: UUID,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    await service.delete_assessment(assessment_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{assessment_id}/sections", response_model=SectionResponse, status_code=status.HTTP_201_CREATED)
async def add_section(
    assessment_id: UUID,
    payload: SectionCreate,
    current_user: User = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service)
):
    """Add a section; questions in the body are added with it"""
    section = await service.add_section(assessment_id, payload.title, payload.description, current_user)
    if payload.questions:
        await service.add_questions(section.id, [q.model_dump() for q in payload.questions], current_user)
        section = await service.get_section(section.id, refresh=True)
    return section


@router.post("/{assessment_id}/attempts", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    assessment_id: UUID,
    current_user: User = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service)
):
    """
    Start an attempt, or resume the open one

    Only assessments attached to a job the candidate applied to can be
    taken. Questions come without the answer key; with
    `randomize_questions` they are shuffled within each section, and the
    order stays fixed for the attempt.
    """
    result = await service.start_attempt(assessment_id, current_user)
    return await _attempt_view(result, service)
