"""Assessment repository for database operations"""

from typing import List, Optional, Dict, Any
from uuid import UUID
from sqlalchemy import case, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.assessment import Assessment, AssessmentResult, AssessmentSection, Question
from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class AssessmentRepository:
    """Repository for assessments, their sections and questions, and attempts"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, assessment_data: Dict[str, Any]) -> Assessment:
        assessment = Assessment(**assessment_data)
        self.session.add(assessment)
        await self.session.flush()
        logger.info(f"Created assessment: {assessment.id}")
        return assessment

    async def get_by_id(self, assessment_id: UUID, refresh: bool = False) -> Optional[Assessment]:
        stmt = select(Assessment).where(Assessment.id == assessment_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self, include_archived: bool = False, skip: int = 0, limit: int = 100) -> List[Assessment]:
        stmt = select(Assessment)
        if not include_archived:
            stmt = stmt.where(Assessment.archived.is_(False))
        stmt = stmt.order_by(Assessment.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, entity, updates: Dict[str, Any]):
        for key, value in updates.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def delete(self, entity) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    async def add_section(self, assessment: Assessment, title: str, description: Optional[str] = None) -> AssessmentSection:
        section = AssessmentSection(assessment_id=assessment.id, title=title, description=description)
        self.session.add(section)
        await self.session.flush()
        return section

    async def get_section(self, section_id: UUID, refresh: bool = False) -> Optional[AssessmentSection]:
        stmt = select(AssessmentSection).where(AssessmentSection.id == section_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_questions(self, section: AssessmentSection, questions: List[Dict[str, Any]]) -> List[Question]:
        rows = [Question(section_id=section.id, **question) for question in questions]
        self.session.add_all(rows)
        await self.session.flush()
        logger.info(f"Added {len(rows)} questions to section {section.id}")
        return rows

    async def get_question(self, question_id: UUID) -> Optional[Question]:
        return await self.session.get(Question, question_id)

    # Attempts

    async def create_result(self, assessment_id: UUID, candidate_id: UUID) -> AssessmentResult:
        attempt = AssessmentResult(assessment_id=assessment_id, candidate_id=candidate_id)
        self.session.add(attempt)
        await self.session.flush()
        return attempt

    async def get_result(self, result_id: UUID) -> Optional[AssessmentResult]:
        result = await self.session.execute(
            select(AssessmentResult).where(AssessmentResult.id == result_id)
        )
        return result.unique().scalar_one_or_none()

    async def find_open_result(self, assessment_id: UUID, candidate_id: UUID) -> Optional[AssessmentResult]:
        result = await self.session.execute(
            select(AssessmentResult).where(
                AssessmentResult.assessment_id == assessment_id,
                AssessmentResult.candidate_id == candidate_id,
                AssessmentResult.completed.is_(False),
            )
        )
        return result.unique().scalars().first()

    async def list_results(
        self,
        candidate_id: Optional[UUID] = None,
        assessment_id: Optional[UUID] = None,
        completed_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[AssessmentResult]:
        stmt = select(AssessmentResult)
        if candidate_id is not None:
            stmt = stmt.where(AssessmentResult.candidate_id == candidate_id)
        if assessment_id is not None:
            stmt = stmt.where(AssessmentResult.assessment_id == assessment_id)
        if completed_only:
            stmt = stmt.where(AssessmentResult.completed.is_(True))

        stmt = stmt.order_by(AssessmentResult.started_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def score_stats(self, passing_score: int) -> Dict[str, Any]:
        """Average score and pass rate over completed attempts"""
        result = await self.session.execute(
            select(
                func.count(AssessmentResult.id),
                func.avg(AssessmentResult.score),
                func.sum(case((AssessmentResult.score >= passing_score, 1), else_=0)),
            ).where(AssessmentResult.completed.is_(True))
        )
        total, average, passed = result.one()
        total = total or 0
        return {
            "completed_attempts": total,
            "average_score": round(float(average), 1) if average is not None else None,
            "pass_rate": round((passed or 0) / total * 100, 1) if total else None,
        }
