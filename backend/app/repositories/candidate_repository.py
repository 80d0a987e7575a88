"""Candidate repository for database operations"""

from typing import List, Optional, Dict, Any
from uuid import UUID
from sqlalchemy import select, or_, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.job import JobApplication
from backend.app.models.user import Region, User
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

SORT_FIELDS = {
    "created_at": Candidate.created_at,
    "updated_at": Candidate.updated_at,
    "current_step": Candidate.current_step,
    "status": Candidate.status,
    "name": User.name,
}


class CandidateRepository:
    """Repository for candidate database operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, candidate_data: Dict[str, Any]) -> Candidate:
        """
        Create a new candidate

        Args:
            candidate_data: Column values; ``id`` must be the owning user's id

        Returns:
            Created candidate
        """
        candidate = Candidate(**candidate_data)
        self.session.add(candidate)
        await self.session.flush()

        logger.info(f"Created candidate: {candidate.id}")
        return candidate

    async def get_by_id(self, candidate_id: UUID, refresh: bool = False) -> Optional[Candidate]:
        """
        Get candidate by ID

        Args:
            candidate_id: Candidate UUID (same as the user id)
            refresh: Reload the row and its applications even if already in the session

        Returns:
            Candidate if found, None otherwise
        """
        stmt = select(Candidate).where(Candidate.id == candidate_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        candidate = result.unique().scalar_one_or_none()

        if not candidate:
            logger.debug(f"Candidate not found: {candidate_id}")

        return candidate

    async def update(self, candidate: Candidate, update_data: Dict[str, Any]) -> Candidate:
        for key, value in update_data.items():
            if hasattr(candidate, key):
                setattr(candidate, key, value)

        await self.session.flush()
        logger.info(f"Updated candidate: {candidate.id}")
        return candidate

    def _filtered(
        self,
        query: Optional[str] = None,
        status: Optional[CandidateStatus] = None,
        region: Optional[Region] = None,
        job_id: Optional[UUID] = None,
        manager_id: Optional[UUID] = None,
        manager_region: Optional[Region] = None,
    ):
        stmt = select(Candidate).join(User, User.id == Candidate.id)

        conditions = []

        if query:
            search_pattern = f"%{query}%"
            conditions.append(
                or_(
                    User.name.ilike(search_pattern),
                    User.email.ilike(search_pattern),
                    User.username.ilike(search_pattern),
                )
            )

        if status is not None:
            conditions.append(Candidate.status == status)

        if region is not None:
            conditions.append(Candidate.region == region)

        if job_id is not None:
            conditions.append(Candidate.applications.any(JobApplication.job_id == job_id))

        # Managers see their own candidates plus everyone in their region
        if manager_id is not None:
            visibility = [Candidate.assigned_manager_id == manager_id]
            if manager_region is not None:
                visibility.append(Candidate.region == manager_region)
            conditions.append(or_(*visibility))

        if conditions:
            stmt = stmt.where(and_(*conditions))

        return stmt

    async def search(
        self,
        query: Optional[str] = None,
        status: Optional[CandidateStatus] = None,
        region: Optional[Region] = None,
        job_id: Optional[UUID] = None,
        manager_id: Optional[UUID] = None,
        manager_region: Optional[Region] = None,
        sort: str = "created_at",
        descending: bool = True,
        skip: int = 0,
        limit: int = 100
    ) -> List[Candidate]:
        """
        Search candidates with filters

        Args:
            query: Text search over name, email and username
            status: Pipeline status
            region: Candidate region
            job_id: Only candidates who applied to this job
            manager_id: Restrict to what this manager may see
            manager_region: The manager's region, widening ``manager_id``
            sort: One of ``SORT_FIELDS``
            descending: Sort direction
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of matching candidates
        """
        stmt = self._filtered(query, status, region, job_id, manager_id, manager_region)

        column = SORT_FIELDS.get(sort, Candidate.created_at)
        stmt = stmt.order_by(column.desc() if descending else column.asc())
        stmt = stmt.offset(skip).limit(limit)

        result = await self.session.execute(stmt)
        candidates = list(result.unique().scalars().all())

        logger.info(f"Search returned {len(candidates)} candidates")
        return candidates

    async def count(self, **filters) -> int:
        stmt = self._filtered(**filters).with_only_columns(func.count(Candidate.id))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def list_pending(self, skip: int = 0, limit: int = 100) -> List[Candidate]:
        """Candidates who have not applied to anything yet"""
        stmt = (
            select(Candidate)
            .where(
                or_(
                    Candidate.status == CandidateStatus.PROFILE_CREATED,
                    ~Candidate.applications.any(),
                )
            )
            .order_by(Candidate.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def count_by_status(self) -> Dict[str, int]:
        result = await self.session.execute(
            select(Candidate.status, func.count()).group_by(Candidate.status)
        )
        return {status.value: count for status, count in result.all()}
