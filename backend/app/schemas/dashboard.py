"""Dashboard schemas"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from backend.app.schemas.admin import ActivityLogResponse
from backend.app.schemas.assessment import AssessmentResultResponse
from backend.app.schemas.interview import InterviewResponse
from backend.app.schemas.progression import HiringStateResponse


class CandidateDashboardResponse(BaseModel):
    """Everything the candidate home page shows"""
    hiring_state: HiringStateResponse
    assessment_results: List[AssessmentResultResponse]
    interviews: List[InterviewResponse]
    recent_activity: List[ActivityLogResponse]


class JobApplicationCount(BaseModel):
    job_id: UUID
    title: str
    applications: int


class AssessmentOverview(BaseModel):
    completed_attempts: int
    average_score: Optional[float] = None
    pass_rate: Optional[float] = None


class StaffOverviewResponse(BaseModel):
    """Pipeline overview for staff"""
    total_candidates: int
    candidates_by_status: Dict[str, int]
    pending_candidates: int
    applications_by_job: List[JobApplicationCount]
    assessments: AssessmentOverview
    recent_activity: List[ActivityLogResponse]
    region: Optional[str] = None
