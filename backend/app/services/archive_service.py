"""Archiving of applications that have sat in the pipeline too long"""

from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.logging import get_logger
from backend.app.models.base import utcnow
from backend.app.models.candidate import CandidateStatus
from backend.app.repositories.job_repository import JobRepository
from backend.app.services.pipeline_service import PipelineService

logger = get_logger(__name__)

# Applications in these statuses are never auto-archived
KEEP_STATUSES = (CandidateStatus.HIRED, CandidateStatus.ARCHIVED)

AUTO_ARCHIVE_TASK = "auto_archive_applications"


class ArchiveService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.jobs = JobRepository(db)
        self.pipeline = PipelineService(db)

    async def archive_stale_applications(self, days: Optional[int] = None) -> Dict[str, Any]:
        """
        Archive applications created more than ``days`` ago

        Each application goes through the normal transition path, so it
        gets a history row and the candidate's status and step follow.
        """
        days = settings.AUTO_ARCHIVE_DAYS if days is None else days
        cutoff = utcnow() - timedelta(days=days)

        stale = await self.jobs.list_stale_applications(cutoff, KEEP_STATUSES)
        archived = []
        for application in stale:
            await self.pipeline.change_status(
                application.id,
                CandidateStatus.ARCHIVED,
                actor=None,
                note=f"Auto-archived after {days} days",
            )
            archived.append(str(application.id))

        logger.info(f"Auto-archived {len(archived)} applications older than {days} days")
        return {"archived": len(archived), "application_ids": archived, "days_threshold": days}
