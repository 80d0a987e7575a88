"""Candidate schemas for API requests and responses"""

from typing import List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, ConfigDict

from backend.app.models.candidate import CandidateStatus
from backend.app.models.user import Region
from backend.app.schemas.auth import UserResponse


class CandidateProfileUpdate(BaseModel):
    """Contact fields a candidate may edit on their own profile"""
    phone: Optional[str] = Field(None, max_length=50, description="Phone number")
    location: Optional[str] = Field(None, max_length=255, description="City or address")
    region: Optional[Region] = Field(None, description="Sales region")

    @field_validator('phone', 'location')
    @classmethod
    def strip_blank(cls, v):
        if v is not None:
            return v.strip() if v.strip() else None
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "phone": "+1 555 0100",
                "location": "Austin, TX",
                "region": "south"
            }
        }
    )


class ApplicationSummary(BaseModel):
    id: UUID
    job_id: UUID
    job_title: Optional[str] = None
    status: CandidateStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_application(cls, application):
        return cls(
            id=application.id,
            job_id=application.job_id,
            job_title=application.job.title if application.job else None,
            status=application.status,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )


class CandidateResponse(BaseModel):
    """Response schema for candidate details"""
    id: UUID
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    location: Optional[str]
    region: Optional[Region]
    status: CandidateStatus
    current_step: int
    version: int
    resume: Optional[str]
    about_me_video: Optional[str]
    sales_pitch_video: Optional[str]
    assigned_manager: Optional[UserResponse] = None
    applications: List[ApplicationSummary] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_candidate(cls, candidate):
        """Create CandidateResponse from Candidate model"""
        return cls(
            id=candidate.id,
            name=candidate.name,
            email=candidate.email,
            phone=candidate.phone,
            location=candidate.location,
            region=candidate.region,
            status=candidate.status,
            current_step=candidate.current_step,
            version=candidate.version,
            resume=candidate.resume,
            about_me_video=candidate.about_me_video,
            sales_pitch_video=candidate.sales_pitch_video,
            assigned_manager=(
                UserResponse.model_validate(candidate.assigned_manager)
                if candidate.assigned_manager else None
            ),
            applications=[ApplicationSummary.from_application(app) for app in candidate.applications],
            created_at=candidate.created_at,
            updated_at=candidate.updated_at,
        )


class CandidateListResponse(BaseModel):
    """Response schema for candidate listing with pagination"""
    candidates: List[CandidateResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class AssetUploadResponse(BaseModel):
    """Response schema for a candidate asset upload"""
    kind: str
    key: str
    url: str
    status: CandidateStatus


class AssetUrlResponse(BaseModel):
    kind: str
    url: str
    expires_in: int


class ManagerAssignment(BaseModel):
    manager_id: Optional[UUID] = Field(None, description="Manager to assign, null to unassign")
