"""Interview repository for database operations"""

from typing import List, Optional, Dict, Any
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.interview import Interview, InterviewStatus
from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class InterviewRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, interview_data: Dict[str, Any]) -> Interview:
        interview = Interview(**interview_data)
        self.session.add(interview)
        await self.session.flush()
        logger.info(f"Scheduled interview {interview.id} for candidate {interview.candidate_id}")
        return interview

    async def get_by_id(self, interview_id: UUID) -> Optional[Interview]:
        result = await self.session.execute(
            select(Interview).where(Interview.id == interview_id)
        )
        return result.scalar_one_or_none()

    async def list_all(
        self,
        candidate_id: Optional[UUID] = None,
        manager_id: Optional[UUID] = None,
        status: Optional[InterviewStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Interview]:
        stmt = select(Interview)
        if candidate_id is not None:
            stmt = stmt.where(Interview.candidate_id == candidate_id)
        if manager_id is not None:
            stmt = stmt.where(Interview.manager_id == manager_id)
        if status is not None:
            stmt = stmt.where(Interview.status == status)

        stmt = stmt.order_by(Interview.scheduled_at).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, interview: Interview, updates: Dict[str, Any]) -> Interview:
        for key, value in updates.items():
            setattr(interview, key, value)
        await self.session.flush()
        return interview
