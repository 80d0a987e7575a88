"""Job and application repository for database operations"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func

from backend.app.models.candidate import CandidateStatus
from backend.app.models.job import ApplicationStatusHistory, Job, JobApplication, JobStatus
from backend.app.models.training import TrainingModule
from backend.app.models.assessment import Assessment
from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class JobRepository:
    """Repository for job-related database operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, job_data: Dict[str, Any]) -> Job:
        job = Job(**job_data)
        self.db.add(job)
        await self.db.flush()

        logger.info(f"Created job: {job.id}")
        return job

    async def get_by_id(self, job_id: UUID) -> Optional[Job]:
        result = await self.db.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()

    def _filtered(
        self,
        query: Optional[str] = None,
        status: Optional[JobStatus] = None,
        public_only: bool = False,
        include_archived: bool = False,
    ):
        stmt = select(Job)

        if status is not None:
            stmt = stmt.where(Job.status == status)

        if public_only:
            stmt = stmt.where(Job.is_public.is_(True), Job.status == JobStatus.ACTIVE)

        if not include_archived:
            stmt = stmt.where(Job.archived.is_(False))

        if query:
            search_term = f"%{query}%"
            stmt = stmt.where(
                or_(
                    Job.title.ilike(search_term),
                    Job.description.ilike(search_term),
                    Job.department.ilike(search_term),
                )
            )

        return stmt

    async def search(
        self,
        query: Optional[str] = None,
        status: Optional[JobStatus] = None,
        public_only: bool = False,
        include_archived: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Job]:
        """
        Search jobs with filters

        Args:
            query: Text search over title, description and department
            status: Job status filter
            public_only: Only active jobs visible on the public board
            include_archived: Include archived jobs
            skip: Pagination offset
            limit: Page size

        Returns:
            List of matching jobs, newest first
        """
        stmt = self._filtered(query, status, public_only, include_archived)
        stmt = stmt.order_by(Job.created_at.desc()).offset(skip).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, **filters) -> int:
        stmt = self._filtered(**filters).with_only_columns(func.count(Job.id))
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def update(self, job: Job, updates: Dict[str, Any]) -> Job:
        for key, value in updates.items():
            setattr(job, key, value)
        await self.db.flush()

        logger.info(f"Updated job: {job.id}")
        return job

    async def set_requirements(
        self,
        job: Job,
        training_module_ids: Optional[Sequence[UUID]] = None,
        assessment_ids: Optional[Sequence[UUID]] = None,
    ) -> Job:
        """Replace the job's required training modules and/or assessments"""
        if training_module_ids is not None:
            modules = []
            if training_module_ids:
                result = await self.db.execute(
                    select(TrainingModule).where(TrainingModule.id.in_(training_module_ids))
                )
                modules = list(result.scalars().all())
            job.training_modules = modules

        if assessment_ids is not None:
            assessments = []
            if assessment_ids:
                result = await self.db.execute(
                    select(Assessment).where(Assessment.id.in_(assessment_ids))
                )
                assessments = list(result.scalars().all())
            job.assessments = assessments

        await self.db.flush()
        return job

    async def delete(self, job: Job) -> None:
        await self.db.delete(job)
        await self.db.flush()
        logger.info(f"Deleted job: {job.id}")

    # Applications

    async def create_application(self, candidate_id: UUID, job_id: UUID, status: CandidateStatus) -> JobApplication:
        application = JobApplication(candidate_id=candidate_id, job_id=job_id, status=status)
        self.db.add(application)
        await self.db.flush()

        logger.info(f"Created application {application.id} for candidate {candidate_id} on job {job_id}")
        return application

    async def get_application(self, application_id: UUID, refresh: bool = False) -> Optional[JobApplication]:
        stmt = select(JobApplication).where(JobApplication.id == application_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def find_application(self, candidate_id: UUID, job_id: UUID) -> Optional[JobApplication]:
        result = await self.db.execute(
            select(JobApplication).where(
                JobApplication.candidate_id == candidate_id,
                JobApplication.job_id == job_id,
            )
        )
        return result.unique().scalar_one_or_none()

    async def list_applications(
        self,
        candidate_id: Optional[UUID] = None,
        job_id: Optional[UUID] = None,
        status: Optional[CandidateStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[JobApplication]:
        stmt = select(JobApplication)
        if candidate_id is not None:
            stmt = stmt.where(JobApplication.candidate_id == candidate_id)
        if job_id is not None:
            stmt = stmt.where(JobApplication.job_id == job_id)
        if status is not None:
            stmt = stmt.where(JobApplication.status == status)

        stmt = stmt.order_by(JobApplication.updated_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.unique().scalars().all())

    async def list_stale_applications(self, older_than: datetime, excluded: Sequence[CandidateStatus]) -> List[JobApplication]:
        """Applications created before ``older_than`` whose status is not in ``excluded``"""
        result = await self.db.execute(
            select(JobApplication)
            .where(
                JobApplication.created_at < older_than,
                JobApplication.status.not_in(list(excluded)),
            )
            .order_by(JobApplication.created_at)
        )
        return list(result.unique().scalars().all())

    async def delete_application(self, application: JobApplication) -> None:
        await self.db.delete(application)
        await self.db.flush()
        logger.info(f"Deleted application: {application.id}")

    async def add_history(
        self,
        application: JobApplication,
        from_status: Optional[CandidateStatus],
        to_status: CandidateStatus,
        changed_by: Optional[UUID] = None,
        note: Optional[str] = None,
    ) -> ApplicationStatusHistory:
        entry = ApplicationStatusHistory(
            application_id=application.id,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            note=note,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_history(self, application_id: UUID) -> List[ApplicationStatusHistory]:
        result = await self.db.execute(
            select(ApplicationStatusHistory)
            .where(ApplicationStatusHistory.application_id == application_id)
            .order_by(ApplicationStatusHistory.changed_at)
        )
        return list(result.scalars().all())

    async def count_applications_by_job(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Job.id, Job.title, func.count(JobApplication.id))
            .join(JobApplication, JobApplication.job_id == Job.id, isouter=True)
            .group_by(Job.id, Job.title)
            .order_by(func.count(JobApplication.id).desc())
        )
        return [
            {"job_id": job_id, "title": title, "applications": count}
            for job_id, title, count in result.all()
        ]
