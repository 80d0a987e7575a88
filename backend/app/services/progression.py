"""Hiring-progression state model

Pure derivation of where a candidate stands in the hiring pipeline:
the current step (1-5), the state of every step, which training modules
are unlocked, and whether a requested status change is allowed.

Nothing here touches the database. ``PipelineService`` loads the inputs,
calls :func:`derive_hiring_state` and persists ``current_step``.
"""

import enum
import math
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Hashable, Iterable, List, Optional, Sequence, Tuple

from backend.app.core.exceptions import InvalidTransitionException
from backend.app.models.base import as_utc
from backend.app.models.candidate import CandidateStatus


class StepKey(str, enum.Enum):
    APPLICATION = "application"
    REVIEW = "review"
    TRAINING = "training"
    INTERVIEW = "interview"
    PAID_PROJECT = "paid_project"


class StepState(str, enum.Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
    LOCKED = "locked"


class ModuleStatus(str, enum.Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    LOCKED = "locked"


class Outcome(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    HIRED = "hired"
    REJECTED = "rejected"
    ARCHIVED = "archived"


HIRING_STEPS: Tuple[Tuple[int, StepKey, str], ...] = (
    (1, StepKey.APPLICATION, "Submit Application"),
    (2, StepKey.REVIEW, "HR Review & Assessment"),
    (3, StepKey.TRAINING, "Training Modules"),
    (4, StepKey.INTERVIEW, "Manager Interview"),
    (5, StepKey.PAID_PROJECT, "Paid Project"),
)
FIRST_STEP = 1
LAST_STEP = len(HIRING_STEPS)

# Share of module progress carried by videos when the module has a quiz
VIDEO_WEIGHT = 80
QUIZ_WEIGHT = 100 - VIDEO_WEIGHT

S = CandidateStatus

ALLOWED_TRANSITIONS: Dict[CandidateStatus, FrozenSet[CandidateStatus]] = {
    S.PROFILE_CREATED: frozenset({S.APPLICATION_IN_PROGRESS, S.APPLIED, S.ARCHIVED}),
    S.APPLICATION_IN_PROGRESS: frozenset({S.APPLIED, S.ARCHIVED}),
    S.APPLIED: frozenset({S.HR_REVIEW, S.REJECTED, S.ARCHIVED}),
    S.HR_REVIEW: frozenset({S.HR_APPROVED, S.REJECTED, S.ARCHIVED}),
    S.HR_APPROVED: frozenset({S.TRAINING, S.REJECTED, S.ARCHIVED}),
    S.TRAINING: frozenset({S.MANAGER_INTERVIEW, S.REJECTED, S.ARCHIVED}),
    S.MANAGER_INTERVIEW: frozenset({S.PAID_PROJECT, S.HIRED, S.REJECTED, S.ARCHIVED}),
    S.PAID_PROJECT: frozenset({S.HIRED, S.REJECTED, S.ARCHIVED}),
    S.REJECTED: frozenset({S.ARCHIVED}),
    S.ARCHIVED: frozenset({S.HR_REVIEW}),
    S.HIRED: frozenset(),
}

STATUS_STEPS: Dict[CandidateStatus, int] = {
    S.PROFILE_CREATED: 1,
    S.APPLICATION_IN_PROGRESS: 1,
    S.APPLIED: 2,
    S.HR_REVIEW: 2,
    S.HR_APPROVED: 3,
    S.TRAINING: 3,
    S.MANAGER_INTERVIEW: 4,
    S.PAID_PROJECT: 5,
    S.HIRED: 5,
}

TRAINING_ACCESS_STATUSES = frozenset({
    S.HR_APPROVED, S.TRAINING, S.MANAGER_INTERVIEW, S.PAID_PROJECT, S.HIRED,
})

# Target statuses that require every training module to be completed
TRAINING_GATED_STATUSES = frozenset({S.MANAGER_INTERVIEW})

OUTCOMES = {
    S.HIRED: Outcome.HIRED,
    S.REJECTED: Outcome.REJECTED,
    S.ARCHIVED: Outcome.ARCHIVED,
}

# Statuses counted as "still in the pipeline" by auto-archive and dashboards
OPEN_STATUSES = frozenset(status for status in CandidateStatus if status not in OUTCOMES)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_step(step: Optional[int]) -> int:
    if step is None:
        return FIRST_STEP
    return max(FIRST_STEP, min(LAST_STEP, int(step)))


# ---------------------------------------------------------------------------
# Application completeness
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ApplicationProfile:
    """The candidate fields an application needs before it can be submitted"""
    resume: Optional[str] = None
    about_me_video: Optional[str] = None
    sales_pitch_video: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: Any) -> "ApplicationProfile":
        return cls(
            resume=candidate.resume,
            about_me_video=candidate.about_me_video,
            sales_pitch_video=candidate.sales_pitch_video,
            phone=candidate.phone,
            location=candidate.location,
        )

    def missing_fields(self) -> List[str]:
        return [
            name for name in ("resume", "about_me_video", "sales_pitch_video", "phone", "location")
            if not (getattr(self, name) or "").strip()
        ]


def is_application_complete(profile: ApplicationProfile) -> bool:
    return not profile.missing_fields()


# ---------------------------------------------------------------------------
# Training modules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModuleContent:
    """What a training module asks of a candidate"""
    module_id: Hashable
    slug: str
    title: str
    video_ids: Tuple[Hashable, ...] = ()
    has_quiz: bool = False

    @classmethod
    def from_module(cls, module: Any) -> "ModuleContent":
        return cls(
            module_id=module.id,
            slug=module.module,
            title=module.title,
            video_ids=tuple(video.id for video in module.active_videos),
            has_quiz=module.quiz_assessment_id is not None,
        )


@dataclass
class ModuleProgress:
    module_id: Hashable
    slug: str
    title: str
    total_videos: int
    watched_videos: int
    has_quiz: bool
    quiz_passed: bool
    progress: int
    locked: bool
    status: ModuleStatus

    @property
    def completed(self) -> bool:
        return self.status == ModuleStatus.COMPLETED


def module_progress_percent(total_videos: int, watched_videos: int, has_quiz: bool, quiz_passed: bool) -> int:
    """Progress of one module, 0-100"""
    if total_videos > 0:
        watched = min(watched_videos, total_videos)
        if not has_quiz:
            return round_half_up(watched / total_videos * 100)
        video_part = watched / total_videos * VIDEO_WEIGHT
        return round_half_up(video_part + (QUIZ_WEIGHT if quiz_passed else 0))
    if not has_quiz or quiz_passed:
        return 100
    return 0


def compute_module_progress(
    modules: Sequence[ModuleContent],
    watched_video_ids: Iterable[Hashable],
    passed_module_ids: Iterable[Hashable],
) -> List[ModuleProgress]:
    """
    Progress and lock state for modules taken in order

    The first module is always unlocked. Every later module stays locked
    until the module before it is unlocked and at 100%.
    """
    watched = set(watched_video_ids)
    passed = set(passed_module_ids)

    results: List[ModuleProgress] = []
    previous_completed = True

    for index, module in enumerate(modules):
        watched_count = sum(1 for video_id in module.video_ids if video_id in watched)
        quiz_passed = module.module_id in passed
        progress = module_progress_percent(
            len(module.video_ids), watched_count, module.has_quiz, quiz_passed
        )

        locked = index > 0 and not previous_completed
        if locked:
            status = ModuleStatus.LOCKED
        elif progress == 100:
            status = ModuleStatus.COMPLETED
        else:
            status = ModuleStatus.IN_PROGRESS

        previous_completed = not locked and progress == 100

        results.append(ModuleProgress(
            module_id=module.module_id,
            slug=module.slug,
            title=module.title,
            total_videos=len(module.video_ids),
            watched_videos=watched_count,
            has_quiz=module.has_quiz,
            quiz_passed=quiz_passed,
            progress=progress,
            locked=locked,
            status=status,
        ))

    return results


@dataclass
class TrainingSummary:
    modules: List[ModuleProgress] = field(default_factory=list)
    overall: int = 0
    by_module: Dict[str, int] = field(default_factory=dict)
    complete: bool = True

    @property
    def next_module(self) -> Optional[ModuleProgress]:
        for module in self.modules:
            if module.status == ModuleStatus.IN_PROGRESS:
                return module
        return None


def summarize_training(modules: Sequence[ModuleProgress]) -> TrainingSummary:
    overall = round_half_up(sum(m.progress for m in modules) / len(modules)) if modules else 0
    return TrainingSummary(
        modules=list(modules),
        overall=overall,
        by_module={m.slug: m.progress for m in modules},
        complete=all(m.completed for m in modules),
    )


def is_module_unlocked(summary: TrainingSummary, module_id: Hashable) -> bool:
    for module in summary.modules:
        if module.module_id == module_id:
            return not module.locked
    return False


# ---------------------------------------------------------------------------
# Hiring steps
# ---------------------------------------------------------------------------

def outcome_for_status(status: CandidateStatus) -> Outcome:
    return OUTCOMES.get(status, Outcome.IN_PROGRESS)


def step_for_status(
    status: CandidateStatus,
    application_complete: bool,
    previous_step: Optional[int] = None,
) -> int:
    """
    Pipeline step for a status

    Rejected and archived candidates stay frozen at the step they had
    reached, which is why the persisted step is passed back in.
    """
    if status in (S.REJECTED, S.ARCHIVED):
        return clamp_step(previous_step)

    step = STATUS_STEPS[status]
    if step == 2 and not application_complete:
        return 1
    return step


@dataclass
class StepView:
    number: int
    key: StepKey
    title: str
    state: StepState

    @property
    def completed(self) -> bool:
        return self.state == StepState.COMPLETED

    @property
    def active(self) -> bool:
        return self.state == StepState.CURRENT

    @property
    def locked(self) -> bool:
        return self.state == StepState.LOCKED


def step_states(current_step: int, outcome: Outcome = Outcome.IN_PROGRESS) -> List[StepView]:
    current_step = clamp_step(current_step)
    views = []

    for number, key, title in HIRING_STEPS:
        if outcome == Outcome.HIRED:
            state = StepState.COMPLETED
        elif outcome in (Outcome.REJECTED, Outcome.ARCHIVED):
            state = StepState.COMPLETED if number < current_step else StepState.LOCKED
        elif number < current_step:
            state = StepState.COMPLETED
        elif number == current_step:
            state = StepState.CURRENT
        elif number == current_step + 1:
            state = StepState.PENDING
        else:
            state = StepState.LOCKED
        views.append(StepView(number=number, key=key, title=title, state=state))

    return views


@dataclass(frozen=True)
class StatusBadge:
    label: str
    description: str


def status_badge(status: CandidateStatus, current_step: int, ready_for_interview: bool = False) -> StatusBadge:
    if status == S.HIRED:
        return StatusBadge("Hired", "Congratulations! You've been selected.")
    if status == S.REJECTED:
        return StatusBadge("Not Selected", "Thank you for your interest.")
    if status == S.ARCHIVED:
        return StatusBadge("Archived", "Thank you for your interest.")

    if current_step == 1:
        return StatusBadge("Submit Application", "Complete your application to proceed")
    if current_step == 2:
        if status == S.HR_REVIEW:
            return StatusBadge("Under Review", "Application under review, assessment will be available soon")
        return StatusBadge("Complete Assessment", "Take your assessment test")
    if current_step == 3:
        if ready_for_interview:
            return StatusBadge("Training Complete", "Your interview will be scheduled soon")
        return StatusBadge("Training Phase", "Complete training modules")
    if current_step == 4:
        return StatusBadge("Interview Phase", "Schedule your interview")
    return StatusBadge("Paid Project", "Complete your paid project")


@dataclass
class HiringState:
    status: CandidateStatus
    outcome: Outcome
    current_step: int
    steps: List[StepView]
    application_complete: bool
    missing_fields: List[str]
    can_access_training: bool
    ready_for_interview: bool
    badge: StatusBadge
    training: TrainingSummary

    @property
    def journey_percent(self) -> int:
        if self.outcome == Outcome.HIRED:
            return 100
        return round_half_up(self.current_step / LAST_STEP * 100)


def derive_hiring_state(
    status: CandidateStatus,
    profile: ApplicationProfile,
    training: Optional[TrainingSummary] = None,
    previous_step: Optional[int] = None,
) -> HiringState:
    """Full pipeline view for one candidate"""
    training = training or TrainingSummary()
    application_complete = is_application_complete(profile)
    outcome = outcome_for_status(status)

    current_step = step_for_status(status, application_complete, previous_step)
    can_access_training = status in TRAINING_ACCESS_STATUSES
    ready_for_interview = (
        outcome == Outcome.IN_PROGRESS
        and current_step == 3
        and can_access_training
        and training.complete
    )

    return HiringState(
        status=status,
        outcome=outcome,
        current_step=current_step,
        steps=step_states(current_step, outcome),
        application_complete=application_complete,
        missing_fields=profile.missing_fields(),
        can_access_training=can_access_training,
        ready_for_interview=ready_for_interview,
        badge=status_badge(status, current_step, ready_for_interview),
        training=training,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def allowed_targets(status: CandidateStatus) -> FrozenSet[CandidateStatus]:
    return ALLOWED_TRANSITIONS.get(status, frozenset())


def validate_transition(
    current: CandidateStatus,
    target: CandidateStatus,
    training_complete: bool = True,
    force: bool = False,
) -> None:
    """
    Raise ``InvalidTransitionException`` unless ``current -> target`` is allowed

    ``force`` only skips the training gate, never the transition table.
    """
    if target == current:
        raise InvalidTransitionException(current.value, target.value, "status is unchanged")

    if target not in allowed_targets(current):
        raise InvalidTransitionException(current.value, target.value)

    if target in TRAINING_GATED_STATUSES and not training_complete and not force:
        raise InvalidTransitionException(current.value, target.value, "training is not complete")


# ---------------------------------------------------------------------------
# Staff training report
# ---------------------------------------------------------------------------

@dataclass
class ModuleReport:
    module_id: Hashable
    title: str
    progress: int
    videos_watched: int
    total_videos: int
    quiz_passed: bool
    has_quiz: bool
    time_spent: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class CandidateTrainingReport:
    candidate_id: Hashable
    candidate_name: Optional[str]
    modules: List[ModuleReport]
    overall_progress: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


def build_module_report(
    module: ModuleContent,
    video_progress: Sequence[Any],
    quiz_results: Sequence[Any],
) -> ModuleReport:
    """
    Report one module for one candidate

    Progress counts items: every video plus the quiz, each worth the same.
    ``video_progress`` and ``quiz_results`` are the candidate's rows; rows
    for other modules are ignored.
    """
    video_ids = set(module.video_ids)
    rows = [row for row in video_progress if row.video_id in video_ids]
    quizzes = [row for row in quiz_results if row.module_id == module.module_id]

    watched = sum(1 for row in rows if row.completed)
    quiz_passed = any(row.passed for row in quizzes)

    total_items = len(video_ids) + (1 if module.has_quiz else 0)
    done_items = watched + (1 if module.has_quiz and quiz_passed else 0)
    progress = round_half_up(done_items / total_items * 100) if total_items else 100

    starts = [as_utc(row.started_at) for row in rows if row.started_at]
    finishes = [as_utc(row.completed_at) for row in rows if row.completed_at]
    finishes += [as_utc(row.completed_at) for row in quizzes if row.completed_at]
    if not starts and finishes:
        starts = list(finishes)

    return ModuleReport(
        module_id=module.module_id,
        title=module.title,
        progress=progress,
        videos_watched=watched,
        total_videos=len(video_ids),
        quiz_passed=quiz_passed,
        has_quiz=module.has_quiz,
        time_spent=sum(row.time_spent or 0 for row in rows),
        started_at=min(starts) if starts else None,
        completed_at=max(finishes) if progress == 100 and finishes else None,
    )


def build_training_report(
    candidate_id: Hashable,
    candidate_name: Optional[str],
    modules: Sequence[ModuleContent],
    video_progress: Sequence[Any],
    quiz_results: Sequence[Any],
) -> CandidateTrainingReport:
    reports = [build_module_report(module, video_progress, quiz_results) for module in modules]

    overall = round_half_up(sum(r.progress for r in reports) / len(reports)) if reports else 0
    starts = [r.started_at for r in reports if r.started_at]
    finishes = [r.completed_at for r in reports if r.completed_at]
    all_done = bool(reports) and all(r.progress == 100 for r in reports)

    return CandidateTrainingReport(
        candidate_id=candidate_id,
        candidate_name=candidate_name,
        modules=reports,
        overall_progress=overall,
        started_at=min(starts) if starts else None,
        completed_at=max(finishes) if all_done and finishes else None,
    )
