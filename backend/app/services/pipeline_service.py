"""Pipeline service: applications, status transitions and the persisted hiring step"""

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
from backend.app.models.base import as_utc
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.job import Job, JobApplication, JobStatus
from backend.app.models.training import TrainingModule
from backend.app.models.user import User, UserRole
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.candidate_repository import CandidateRepository
from backend.app.repositories.job_repository import JobRepository
from backend.app.repositories.training_repository import TrainingRepository
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.progression import (
    OPEN_STATUSES,
    TRAINING_GATED_STATUSES,
    ApplicationProfile,
    HiringState,
    ModuleContent,
    TrainingSummary,
    compute_module_progress,
    derive_hiring_state,
    is_application_complete,
    summarize_training,
    validate_transition,
)

logger = get_logger(__name__)

PROFILE_FIELDS = ("phone", "location", "region")
ASSET_FIELDS = ("resume", "about_me_video", "sales_pitch_video")


PIPELINE_ORDER = list(CandidateStatus)


def current_application(
    candidate: Candidate, changed: Optional[JobApplication] = None
) -> Optional[JobApplication]:
    """
    The application that sets the candidate's pipeline status

    A hired application wins outright. Otherwise the furthest open
    application wins, and a finished one only counts once nothing is open.
    Among finished applications ``changed`` (the one just moved) comes
    first, then the most recently updated.
    """
    applications = candidate.applications
    if not applications:
        return None

    for application in applications:
        if application.status == CandidateStatus.HIRED:
            return application

    open_apps = [app for app in applications if app.status in OPEN_STATUSES]
    if open_apps:
        return max(
            open_apps,
            key=lambda app: (PIPELINE_ORDER.index(app.status), as_utc(app.updated_at)),
        )

    if changed is not None and changed in applications:
        return changed
    return max(applications, key=lambda app: as_utc(app.updated_at))


class PipelineService:
    """Moves candidates through the hiring pipeline"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.candidates = CandidateRepository(db)
        self.jobs = JobRepository(db)
        self.training = TrainingRepository(db)
        self.activity = ActivityLogRepository(db)

    async def get_candidate(self, candidate_id: UUID, refresh: bool = False) -> Candidate:
        candidate = await self.candidates.get_by_id(candidate_id, refresh=refresh)
        if not candidate:
            raise NotFoundException(f"Candidate not found: {candidate_id}")
        return candidate

    async def ensure_candidate(self, user: User) -> Candidate:
        """Candidate row for a candidate user, created on first use"""
        if user.role != UserRole.CANDIDATE:
            raise AuthorizationException("Only candidates have a candidate profile")

        candidate = await self.candidates.get_by_id(user.id)
        if candidate is None:
            candidate = await self.candidates.create({"id": user.id, "region": user.region})
            candidate = await self.get_candidate(user.id, refresh=True)
        return candidate

    # Derivation inputs

    async def required_modules(self, job: Optional[Job]) -> List[TrainingModule]:
        """
        Modules a candidate must finish for a job

        A job that lists no modules requires every active module.
        """
        if job is not None:
            modules = [m for m in job.training_modules if not m.archived]
            if modules:
                return sorted(modules, key=lambda m: (m.position, as_utc(m.created_at)))
        return await self.training.list_modules()

    async def training_summary(
        self,
        candidate: Candidate,
        application: Optional[JobApplication] = None,
    ) -> TrainingSummary:
        if application is None:
            application = current_application(candidate)

        modules = await self.required_modules(application.job if application else None)
        watched = await self.training.completed_video_ids(candidate.id)
        passed = await self.training.passed_module_ids(candidate.id)

        progress = compute_module_progress(
            [ModuleContent.from_module(module) for module in modules], watched, passed
        )
        return summarize_training(progress)

    async def hiring_state(self, candidate: Candidate, persist: bool = True) -> HiringState:
        """
        Derive the candidate's pipeline view

        With ``persist`` the derived step is written back to
        ``candidate.current_step`` when it has changed.
        """
        summary = await self.training_summary(candidate)
        state = derive_hiring_state(
            candidate.status,
            ApplicationProfile.from_candidate(candidate),
            summary,
            previous_step=candidate.current_step,
        )

        if persist and candidate.current_step != state.current_step:
            logger.info(
                f"Candidate step {candidate.current_step} -> {state.current_step}",
                extra={"candidate_id": str(candidate.id)},
            )
            candidate.current_step = state.current_step
            await self.db.flush()

        return state

    async def get_hiring_state(self, candidate_id: UUID) -> HiringState:
        candidate = await self.get_candidate(candidate_id)
        state = await self.hiring_state(candidate)
        await self.db.commit()
        return state

    # Candidate profile

    async def update_profile(self, candidate: Candidate, updates: Dict[str, Any], actor: User) -> Candidate:
        """Update contact fields and asset keys, starting the application if needed"""
        changes = {key: value for key, value in updates.items() if key in PROFILE_FIELDS + ASSET_FIELDS}
        await self.candidates.update(candidate, changes)

        if candidate.status == CandidateStatus.PROFILE_CREATED and any(
            getattr(candidate, name) for name in ASSET_FIELDS
        ):
            candidate.status = CandidateStatus.APPLICATION_IN_PROGRESS

        await self.hiring_state(candidate)
        await self.activity.log(
            "profile_updated", "candidate", candidate.id, user_id=actor.id,
            details={"fields": sorted(changes)},
        )
        await self.db.commit()
        return candidate

    # Applications

    async def apply(self, candidate: Candidate, job_id: UUID, actor: User) -> JobApplication:
        """
        Submit an application to a job

        Raises:
            ValidationException: The profile is incomplete or the job is closed
            NotFoundException: No such job
            ConflictException: Already applied, or already hired
        """
        profile = ApplicationProfile.from_candidate(candidate)
        if not is_application_complete(profile):
            raise ValidationException(
                "Application is incomplete",
                details={"missing_fields": profile.missing_fields()},
            )

        if candidate.status == CandidateStatus.HIRED:
            raise ConflictException("Hired candidates cannot apply to further jobs")

        job = await self.jobs.get_by_id(job_id)
        if not job:
            raise NotFoundException(f"Job not found: {job_id}")
        if job.archived or job.status != JobStatus.ACTIVE:
            raise ValidationException("Job is not open for applications")

        if await self.jobs.find_application(candidate.id, job.id):
            raise ConflictException("Already applied to this job", details={"job_id": str(job.id)})

        application = await self.jobs.create_application(candidate.id, job.id, CandidateStatus.APPLIED)
        await self.jobs.add_history(application, None, CandidateStatus.APPLIED, changed_by=actor.id)

        candidate = await self.get_candidate(candidate.id, refresh=True)
        self._sync_status(candidate)
        await self.hiring_state(candidate)

        await self.activity.log(
            "applied", "application", application.id, user_id=actor.id,
            details={"job_id": str(job.id), "job_title": job.title},
        )
        await self.db.commit()

        logger.info(f"Candidate applied to job {job.id}", extra={"candidate_id": str(candidate.id)})
        return await self.jobs.get_application(application.id, refresh=True)

    async def get_application(self, application_id: UUID) -> JobApplication:
        application = await self.jobs.get_application(application_id)
        if not application:
            raise NotFoundException(f"Application not found: {application_id}")
        return application

    async def withdraw(self, application_id: UUID, actor: User) -> None:
        """
        Withdraw an application

        Training progress for the job's modules is cleared unless another of
        the candidate's applications still requires the same module.
        """
        application = await self.get_application(application_id)
        if actor.role == UserRole.CANDIDATE and application.candidate_id != actor.id:
            raise AuthorizationException("Cannot withdraw another candidate's application")

        candidate = await self.get_candidate(application.candidate_id)
        others = [app for app in candidate.applications if app.id != application.id]

        withdrawn_modules = {m.id for m in await self.required_modules(application.job)}
        still_required = set()
        for other in others:
            still_required.update(m.id for m in await self.required_modules(other.job))

        job_id = application.job_id
        await self.jobs.delete_application(application)
        await self.training.clear_progress(candidate.id, sorted(withdrawn_modules - still_required, key=str))

        candidate = await self.get_candidate(candidate.id, refresh=True)
        self._sync_status(candidate)
        await self.hiring_state(candidate)

        await self.activity.log(
            "application_withdrawn", "application", application_id, user_id=actor.id,
            details={"job_id": str(job_id)},
        )
        await self.db.commit()

    def _sync_status(self, candidate: Candidate, changed: Optional[JobApplication] = None) -> None:
        """Mirror the candidate's current application onto the candidate"""
        current = current_application(candidate, changed)
        if current is not None:
            candidate.status = current.status
        elif any(getattr(candidate, name) for name in ASSET_FIELDS):
            candidate.status = CandidateStatus.APPLICATION_IN_PROGRESS
        else:
            candidate.status = CandidateStatus.PROFILE_CREATED

    async def change_status(
        self,
        application_id: UUID,
        target: CandidateStatus,
        actor: Optional[User],
        note: Optional[str] = None,
        force: bool = False,
        expected_version: Optional[int] = None,
    ) -> JobApplication:
        """
        Move an application to ``target``

        Args:
            application_id: Application to move
            target: New status
            actor: Acting staff user, None for system jobs
            note: Stored on the history row
            force: Skip the training gate; honoured for admins only
            expected_version: Candidate version the caller last saw

        Raises:
            InvalidTransitionException: ``target`` is not reachable
            ConflictException: ``expected_version`` is stale
        """
        application = await self.get_application(application_id)
        candidate = await self.get_candidate(application.candidate_id, refresh=True)

        if expected_version is not None and candidate.version != expected_version:
            raise ConflictException(
                "Candidate was modified by someone else",
                details={"expected_version": expected_version, "current_version": candidate.version},
            )

        training_complete = True
        if target in TRAINING_GATED_STATUSES:
            summary = await self.training_summary(candidate, application)
            training_complete = summary.complete

        allow_force = force and actor is not None and actor.role == UserRole.ADMIN
        current = application.status
        validate_transition(current, target, training_complete, allow_force)

        # Freeze the step reached before a terminal outcome
        await self.hiring_state(candidate)

        application.status = target
        actor_id = actor.id if actor else None
        await self.jobs.add_history(application, current, target, changed_by=actor_id, note=note)

        self._sync_status(candidate, changed=application)
        await self.hiring_state(candidate)

        await self.activity.log(
            "status_changed", "application", application.id, user_id=actor_id,
            details={
                "candidate_id": str(candidate.id),
                "from": current.value,
                "to": target.value,
                "forced": allow_force and not training_complete,
            },
        )
        await self.db.commit()

        logger.info(
            f"Application {application.id}: {current.value} -> {target.value}",
            extra={"candidate_id": str(candidate.id), "user_id": str(actor_id) if actor_id else None},
        )
        return application

    async def get_history(self, application_id: UUID):
        await self.get_application(application_id)
        return await self.jobs.get_history(application_id)

    # Staff operations

    async def assign_manager(self, candidate_id: UUID, manager_id: Optional[UUID], actor: User) -> Candidate:
        candidate = await self.get_candidate(candidate_id)

        if manager_id is not None:
            manager = await UserRepository(self.db).get_by_id(manager_id)
            if not manager or manager.role not in (UserRole.MANAGER, UserRole.ADMIN):
                raise ValidationException("Assigned user must be a manager")

        candidate.assigned_manager_id = manager_id
        await self.db.flush()
        await self.activity.log(
            "manager_assigned", "candidate", candidate.id, user_id=actor.id,
            details={"manager_id": str(manager_id) if manager_id else None},
        )
        await self.db.commit()

        return await self.get_candidate(candidate_id, refresh=True)

    async def list_pending(self, skip: int = 0, limit: int = 100) -> List[Candidate]:
        return await self.candidates.list_pending(skip=skip, limit=limit)

    def visibility_filters(self, viewer: User) -> Dict[str, Any]:
        """Extra search filters limiting what ``viewer`` may see"""
        if viewer.role == UserRole.MANAGER:
            return {"manager_id": viewer.id, "manager_region": viewer.region}
        return {}

    async def search_candidates(self, viewer: User, **filters) -> List[Candidate]:
        """Candidate search scoped to what ``viewer`` may see"""
        return await self.candidates.search(**filters, **self.visibility_filters(viewer))

    async def count_candidates(self, viewer: User, **filters) -> int:
        return await self.candidates.count(**filters, **self.visibility_filters(viewer))

    def ensure_can_view(self, viewer: User, candidate: Candidate) -> None:
        if viewer.role == UserRole.CANDIDATE and viewer.id != candidate.id:
            raise AuthorizationException("Cannot view another candidate")
        if viewer.role == UserRole.MANAGER:
            own = candidate.assigned_manager_id == viewer.id
            same_region = viewer.region is not None and candidate.region == viewer.region
            if not (own or same_region):
                raise AuthorizationException("Candidate is outside your region")
