"""Database models"""

from backend.app.models.base import TimestampMixin
from backend.app.models.user import User, UserRole, Region, STAFF_ROLES
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.job import (
    Job, JobStatus, JobApplication, ApplicationStatusHistory, job_training, job_assessments
)
from backend.app.models.training import TrainingModule, Video, VideoProgress, QuizResult
from backend.app.models.assessment import Assessment, AssessmentSection, Question, AssessmentResult
from backend.app.models.interview import Interview, InterviewStatus, InterviewDecision
from backend.app.models.activity_log import ActivityLog

__all__ = [
    "TimestampMixin",
    "User",
    "UserRole",
    "Region",
    "STAFF_ROLES",
    "Candidate",
    "CandidateStatus",
    "Job",
    "JobStatus",
    "JobApplication",
    "ApplicationStatusHistory",
    "job_training",
    "job_assessments",
    "TrainingModule",
    "Video",
    "VideoProgress",
    "QuizResult",
    "Assessment",
    "AssessmentSection",
    "Question",
    "AssessmentResult",
    "Interview",
    "InterviewStatus",
    "InterviewDecision",
    "ActivityLog",
]
