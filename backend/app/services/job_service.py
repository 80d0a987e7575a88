"""Job service for business logic operations"""

from typing import List, Optional, Dict, Any, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.job_repository import JobRepository
from backend.app.models.job import Job, JobStatus
from backend.app.models.user import User
from backend.app.core.logging import get_logger
from backend.app.core.exceptions import ConflictException, ValidationException, NotFoundException

logger = get_logger(__name__)

REQUIREMENT_FIELDS = ("training_module_ids", "assessment_ids")


class JobService:
    """Service for job-related business logic"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.job_repo = JobRepository(db)
        self.activity = ActivityLogRepository(db)

    async def _set_requirements(self, job: Job, module_ids: Optional[List[UUID]], assessment_ids: Optional[List[UUID]]) -> None:
        await self.job_repo.set_requirements(job, module_ids, assessment_ids)

        missing = []
        if module_ids is not None and len(job.training_modules) != len(set(module_ids)):
            missing.append("training_module_ids")
        if assessment_ids is not None and len(job.assessments) != len(set(assessment_ids)):
            missing.append("assessment_ids")
        if missing:
            raise ValidationException("Unknown training modules or assessments", details={"fields": missing})

    async def create_job(self, data: Dict[str, Any], actor: User) -> Job:
        """
        Create a new job

        Args:
            data: Job columns plus optional ``training_module_ids`` and ``assessment_ids``
            actor: Creating staff user

        Returns:
            Created job

        Raises:
            ValidationException: If a referenced module or assessment does not exist
        """
        logger.info(f"Creating job: {data['title']}")

        module_ids = data.pop("training_module_ids", None) or []
        assessment_ids = data.pop("assessment_ids", None) or []

        job = await self.job_repo.create({
            **data,
            "created_by": actor.id,
            "status": JobStatus.ACTIVE,
            "training_modules": [],
            "assessments": [],
        })
        await self._set_requirements(job, module_ids, assessment_ids)

        await self.activity.log("job_created", "job", job.id, user_id=actor.id, details={"title": job.title})
        await self.db.commit()

        logger.info(f"Successfully created job: {job.id}")
        return job

    async def get_job(self, job_id: UUID) -> Job:
        """
        Get job by ID

        Raises:
            NotFoundException: If job not found
        """
        job = await self.job_repo.get_by_id(job_id)
        if not job:
            raise NotFoundException(f"Job not found: {job_id}")

        return job

    async def get_public_job(self, job_id: UUID) -> Job:
        job = await self.get_job(job_id)
        if not job.is_public or job.archived or job.status != JobStatus.ACTIVE:
            raise NotFoundException(f"Job not found: {job_id}")
        return job

    async def update_job(self, job_id: UUID, updates: Dict[str, Any], actor: User) -> Job:
        job = await self.get_job(job_id)

        requirements = {key: updates.pop(key) for key in REQUIREMENT_FIELDS if key in updates}
        await self.job_repo.update(job, updates)
        if requirements:
            await self._set_requirements(
                job,
                requirements.get("training_module_ids"),
                requirements.get("assessment_ids"),
            )

        await self.activity.log(
            "job_updated", "job", job.id, user_id=actor.id,
            details={"fields": sorted(list(updates) + list(requirements))},
        )
        await self.db.commit()
        return job

    async def delete_job(self, job_id: UUID, actor: User) -> None:
        """
        Delete a job without applications

        Jobs that have applications are archived instead, so that candidate
        history is kept.

        Raises:
            ConflictException: If the job has applications
        """
        job = await self.get_job(job_id)
        if await self.job_repo.list_applications(job_id=job.id, limit=1):
            raise ConflictException("Job has applications; archive it instead")

        await self.job_repo.delete(job)
        await self.activity.log("job_deleted", "job", job_id, user_id=actor.id, details={"title": job.title})
        await self.db.commit()

    async def search_jobs(
        self,
        query: Optional[str] = None,
        status: Optional[JobStatus] = None,
        public_only: bool = False,
        include_archived: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[Job], int]:
        """Matching jobs for one page, and the total match count"""
        filters = {
            "query": query,
            "status": status,
            "public_only": public_only,
            "include_archived": include_archived,
        }
        jobs = await self.job_repo.search(**filters, skip=skip, limit=limit)
        total = await self.job_repo.count(**filters)
        return jobs, total
