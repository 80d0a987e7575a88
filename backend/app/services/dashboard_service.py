"""Dashboard aggregation for candidates and staff"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.models.candidate import CandidateStatus
from backend.app.models.user import User
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.assessment_repository import AssessmentRepository
from backend.app.repositories.candidate_repository import CandidateRepository
from backend.app.repositories.interview_repository import InterviewRepository
from backend.app.repositories.job_repository import JobRepository
from backend.app.services.pipeline_service import PipelineService

RECENT_LIMIT = 10


class DashboardService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.pipeline = PipelineService(db)
        self.activity = ActivityLogRepository(db)

    async def candidate_dashboard(self, user: User) -> Dict[str, Any]:
        candidate = await self.pipeline.ensure_candidate(user)
        state = await self.pipeline.hiring_state(candidate)
        await self.db.commit()

        return {
            "candidate_id": candidate.id,
            "hiring_state": state,
            "assessment_results": await AssessmentRepository(self.db).list_results(
                candidate_id=candidate.id, limit=RECENT_LIMIT
            ),
            "interviews": await InterviewRepository(self.db).list_all(candidate_id=candidate.id),
            "recent_activity": await self.activity.list_recent(user_id=user.id, limit=RECENT_LIMIT),
        }

    async def staff_overview(self, viewer: User) -> Dict[str, Any]:
        """
        Counts across the pipeline

        Managers get candidate counts scoped to the candidates they can see.
        """
        candidates = CandidateRepository(self.db)
        scope = self.pipeline.visibility_filters(viewer)

        if scope:
            by_status = {}
            for status in CandidateStatus:
                count = await candidates.count(status=status, **scope)
                if count:
                    by_status[status.value] = count
        else:
            by_status = await candidates.count_by_status()

        pending = await candidates.list_pending(limit=10000)
        return {
            "total_candidates": sum(by_status.values()),
            "candidates_by_status": by_status,
            "pending_candidates": len(pending),
            "applications_by_job": await JobRepository(self.db).count_applications_by_job(),
            "assessments": await AssessmentRepository(self.db).score_stats(settings.PASSING_SCORE),
            "recent_activity": await self.activity.list_recent(limit=RECENT_LIMIT),
            "region": viewer.region.value if scope and viewer.region else None,
        }
