"""Schemas for the derived hiring state of a candidate"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from backend.app.models.candidate import CandidateStatus
from backend.app.services.progression import (
    HiringState,
    ModuleProgress,
    ModuleStatus,
    Outcome,
    StepKey,
    StepState,
)


class StepResponse(BaseModel):
    number: int = Field(..., ge=1, le=5)
    key: StepKey
    title: str
    state: StepState


class ModuleProgressResponse(BaseModel):
    """Progress on one training module"""
    module_id: UUID
    slug: str
    title: str
    total_videos: int
    watched_videos: int
    has_quiz: bool
    quiz_passed: bool
    progress: int = Field(..., ge=0, le=100)
    locked: bool
    status: ModuleStatus

    @classmethod
    def from_progress(cls, module: ModuleProgress):
        return cls(
            module_id=module.module_id,
            slug=module.slug,
            title=module.title,
            total_videos=module.total_videos,
            watched_videos=module.watched_videos,
            has_quiz=module.has_quiz,
            quiz_passed=module.quiz_passed,
            progress=module.progress,
            locked=module.locked,
            status=module.status,
        )


class TrainingSummaryResponse(BaseModel):
    overall: int = Field(..., ge=0, le=100)
    complete: bool
    by_module: Dict[str, int]
    modules: List[ModuleProgressResponse]
    next_module_id: Optional[UUID] = None


class BadgeResponse(BaseModel):
    label: str
    description: str


class HiringStateResponse(BaseModel):
    """Everything a candidate dashboard needs to render the hiring journey"""
    candidate_id: Optional[UUID] = None
    status: CandidateStatus
    outcome: Outcome
    current_step: int = Field(..., ge=1, le=5)
    journey_percent: int = Field(..., ge=0, le=100)
    steps: List[StepResponse]
    application_complete: bool
    missing_fields: List[str]
    can_access_training: bool
    ready_for_interview: bool
    badge: BadgeResponse
    training: TrainingSummaryResponse

    @classmethod
    def from_state(cls, state: HiringState, candidate_id: Optional[UUID] = None):
        """Create HiringStateResponse from a derived HiringState"""
        next_module = state.training.next_module
        return cls(
            candidate_id=candidate_id,
            status=state.status,
            outcome=state.outcome,
            current_step=state.current_step,
            journey_percent=state.journey_percent,
            steps=[
                StepResponse(number=s.number, key=s.key, title=s.title, state=s.state)
                for s in state.steps
            ],
            application_complete=state.application_complete,
            missing_fields=state.missing_fields,
            can_access_training=state.can_access_training,
            ready_for_interview=state.ready_for_interview,
            badge=BadgeResponse(label=state.badge.label, description=state.badge.description),
            training=TrainingSummaryResponse(
                overall=state.training.overall,
                complete=state.training.complete,
                by_module=state.training.by_module,
                modules=[ModuleProgressResponse.from_progress(m) for m in state.training.modules],
                next_module_id=next_module.module_id if next_module else None,
            ),
        )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "training",
                "outcome": "in_progress",
                "current_step": 3,
                "journey_percent": 60,
                "application_complete": True,
                "missing_fields": [],
                "can_access_training": True,
                "ready_for_interview": False,
                "badge": {"label": "Training Phase", "description": "Complete training modules"},
            }
        }
    )
