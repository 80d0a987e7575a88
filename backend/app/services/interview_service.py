"""Interview scheduling and outcomes"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import AuthorizationException, NotFoundException, ValidationException
from backend.app.core.logging import get_logger
from backend.app.models.candidate import CandidateStatus
from backend.app.models.interview import Interview, InterviewStatus
from backend.app.models.user import User, UserRole
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.interview_repository import InterviewRepository
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.pipeline_service import PipelineService

logger = get_logger(__name__)

INTERVIEWER_ROLES = (UserRole.MANAGER, UserRole.ADMIN)


class InterviewService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = InterviewRepository(db)
        self.pipeline = PipelineService(db)
        self.activity = ActivityLogRepository(db)

    async def get_interview(self, interview_id: UUID) -> Interview:
        interview = await self.repo.get_by_id(interview_id)
        if not interview:
            raise NotFoundException(f"Interview not found: {interview_id}")
        return interview

    async def get_for(self, interview_id: UUID, viewer: User) -> Interview:
        interview = await self.get_interview(interview_id)
        if viewer.role == UserRole.CANDIDATE and interview.candidate_id != viewer.id:
            raise AuthorizationException("Not your interview")
        if viewer.role == UserRole.MANAGER and interview.manager_id != viewer.id:
            raise AuthorizationException("Not your interview")
        return interview

    async def schedule(
        self,
        candidate_id: UUID,
        scheduled_at: datetime,
        actor: User,
        manager_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> Interview:
        """
        Schedule a manager interview

        The candidate must either be in the interview stage already or have
        finished training. Without ``manager_id`` the candidate's assigned
        manager interviews, falling back to a manager scheduling for themselves.
        """
        candidate = await self.pipeline.get_candidate(candidate_id)
        self.pipeline.ensure_can_view(actor, candidate)

        state = await self.pipeline.hiring_state(candidate)
        if candidate.status != CandidateStatus.MANAGER_INTERVIEW and not state.ready_for_interview:
            raise ValidationException(
                "Candidate is not ready for an interview",
                details={"status": candidate.status.value, "current_step": state.current_step},
            )

        if manager_id is None:
            manager_id = candidate.assigned_manager_id
        if manager_id is None and actor.role in INTERVIEWER_ROLES:
            manager_id = actor.id
        if manager_id is None:
            raise ValidationException("No manager given and none assigned to the candidate")

        manager = await UserRepository(self.db).get_by_id(manager_id)
        if not manager or manager.role not in INTERVIEWER_ROLES:
            raise ValidationException("Interviewer must be a manager")

        interview = await self.repo.create({
            "candidate_id": candidate.id,
            "manager_id": manager.id,
            "scheduled_at": scheduled_at,
            "notes": notes,
        })
        await self.activity.log(
            "interview_scheduled", "interview", interview.id, user_id=actor.id,
            details={"candidate_id": str(candidate.id), "scheduled_at": scheduled_at.isoformat()},
        )
        await self.db.commit()
        return await self.get_interview(interview.id)

    def _check_owner(self, interview: Interview, actor: User) -> None:
        if actor.role == UserRole.MANAGER and interview.manager_id != actor.id:
            raise AuthorizationException("Only the interviewing manager can change this interview")

    async def update(self, interview_id: UUID, updates: Dict[str, Any], actor: User) -> Interview:
        """
        Reschedule, change status, or record the decision and feedback

        A decision marks the interview completed.
        """
        interview = await self.get_interview(interview_id)
        self._check_owner(interview, actor)

        if interview.status == InterviewStatus.CANCELLED and updates.get("decision") is not None:
            raise ValidationException("Cannot record a decision on a cancelled interview")
        if updates.get("decision") is not None:
            updates["status"] = InterviewStatus.COMPLETED

        await self.repo.update(interview, updates)
        await self.activity.log(
            "interview_updated", "interview", interview.id, user_id=actor.id,
            details={
                "fields": sorted(updates),
                "decision": interview.decision.value if interview.decision else None,
            },
        )
        await self.db.commit()
        return interview

    async def list_for(self, viewer: User, **filters) -> List[Interview]:
        """Interviews visible to ``viewer``; candidates see only their own"""
        if viewer.role == UserRole.CANDIDATE:
            filters["candidate_id"] = viewer.id
        elif viewer.role == UserRole.MANAGER:
            filters["manager_id"] = viewer.id
        return await self.repo.list_all(**filters)
