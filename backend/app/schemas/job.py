"""Job and application schemas for API requests and responses"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, ConfigDict
from uuid import UUID

from backend.app.models.candidate import CandidateStatus
from backend.app.models.job import JobStatus


class JobCreateRequest(BaseModel):
    """Request schema for creating a job"""
    title: str = Field(..., min_length=3, max_length=255, description="Job title")
    description: str = Field(..., min_length=10, description="Job description")
    department: Optional[str] = Field(None, max_length=255, description="Department")
    location: Optional[str] = Field(None, max_length=255, description="Job location")
    employment_type: Optional[str] = Field(None, max_length=100, description="e.g. full-time")
    salary_range: Optional[str] = Field(None, max_length=100, description="Display salary range")
    is_public: bool = Field(True, description="Listed on the public job board")
    training_module_ids: List[UUID] = Field(default_factory=list, description="Required training modules")
    assessment_ids: List[UUID] = Field(default_factory=list, description="Assessments for applicants")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Job title cannot be empty')
        return v.strip()

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('Job description cannot be empty')
        return v.strip()

    @field_validator('location', 'department')
    @classmethod
    def validate_optional_text(cls, v):
        if v is not None:
            return v.strip() if v.strip() else None
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Field Sales Representative",
                "description": "Door-to-door sales of home services in your region...",
                "department": "Sales",
                "location": "Austin, TX",
                "employment_type": "full-time",
                "salary_range": "$40k - $60k + commission",
                "is_public": True,
                "training_module_ids": [],
                "assessment_ids": []
            }
        }
    )


class JobUpdateRequest(BaseModel):
    """Request schema for updating a job"""
    title: Optional[str] = Field(None, min_length=3, max_length=255, description="Job title")
    description: Optional[str] = Field(None, min_length=10, description="Job description")
    department: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    employment_type: Optional[str] = Field(None, max_length=100)
    salary_range: Optional[str] = Field(None, max_length=100)
    status: Optional[JobStatus] = Field(None, description="Job status")
    is_public: Optional[bool] = None
    archived: Optional[bool] = None
    training_module_ids: Optional[List[UUID]] = None
    assessment_ids: Optional[List[UUID]] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None:
            if not v.strip():
                raise ValueError('Job title cannot be empty')
            return v.strip()
        return v


class JobResponse(BaseModel):
    """Response schema for job details"""
    id: UUID
    title: str
    description: str
    department: Optional[str]
    location: Optional[str]
    employment_type: Optional[str]
    salary_range: Optional[str]
    status: JobStatus
    is_public: bool
    archived: bool
    training_module_ids: List[UUID]
    assessment_ids: List[UUID]
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job):
        """Create JobResponse from Job model"""
        return cls(
            id=job.id,
            title=job.title,
            description=job.description,
            department=job.department,
            location=job.location,
            employment_type=job.employment_type,
            salary_range=job.salary_range,
            status=job.status,
            is_public=job.is_public,
            archived=job.archived,
            training_module_ids=[module.id for module in job.training_modules],
            assessment_ids=[assessment.id for assessment in job.assessments],
            created_by=job.created_by,
            created_at=job.created_at,
            updated_at=job.updated_at
        )


class JobListResponse(BaseModel):
    """Response schema for job listing with pagination"""
    jobs: List[JobResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class ApplicationResponse(BaseModel):
    """Response schema for a job application"""
    id: UUID
    candidate_id: UUID
    job_id: UUID
    job_title: Optional[str] = None
    status: CandidateStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_application(cls, application):
        return cls(
            id=application.id,
            candidate_id=application.candidate_id,
            job_id=application.job_id,
            job_title=application.job.title if application.job else None,
            status=application.status,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )


class StatusChangeRequest(BaseModel):
    """Request schema for moving an application through the pipeline"""
    status: CandidateStatus = Field(..., description="Target status")
    note: Optional[str] = Field(None, max_length=2000, description="Reason, kept in the history")
    force: bool = Field(False, description="Skip the training gate (admins only)")
    expected_version: Optional[int] = Field(
        None, ge=1, description="Candidate version last seen; a mismatch returns 409"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "hr_approved",
                "note": "Strong assessment score",
                "force": False,
                "expected_version": 3
            }
        }
    )


class StatusHistoryResponse(BaseModel):
    """Response schema for one application status change"""
    id: UUID
    application_id: UUID
    from_status: Optional[CandidateStatus]
    to_status: CandidateStatus
    changed_by: Optional[UUID]
    note: Optional[str]
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ModuleReportResponse(BaseModel):
    module_id: UUID
    title: str
    progress: int
    videos_watched: int
    total_videos: int
    quiz_passed: bool
    has_quiz: bool
    time_spent: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CandidateTrainingReportResponse(BaseModel):
    """Training progress of one applicant on a job's modules"""
    candidate_id: UUID
    candidate_name: Optional[str]
    modules: List[ModuleReportResponse]
    overall_progress: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
