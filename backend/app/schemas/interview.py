"""Interview schemas"""

from typing import Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from backend.app.models.interview import InterviewDecision, InterviewStatus
from backend.app.schemas.auth import UserResponse


class InterviewCreateRequest(BaseModel):
    """Request schema for scheduling an interview"""
    candidate_id: UUID
    manager_id: Optional[UUID] = Field(None, description="Defaults to the candidate's assigned manager")
    scheduled_at: datetime
    notes: Optional[str] = Field(None, max_length=5000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "candidate_id": "123e4567-e89b-12d3-a456-426614174000",
                "scheduled_at": "2024-03-01T15:00:00Z",
                "notes": "Video call"
            }
        }
    )


class InterviewUpdateRequest(BaseModel):
    scheduled_at: Optional[datetime] = None
    status: Optional[InterviewStatus] = None
    decision: Optional[InterviewDecision] = None
    notes: Optional[str] = Field(None, max_length=5000)
    feedback: Optional[str] = Field(None, max_length=5000)


class InterviewResponse(BaseModel):
    id: UUID
    candidate_id: UUID
    manager: UserResponse
    scheduled_at: datetime
    status: InterviewStatus
    decision: Optional[InterviewDecision]
    notes: Optional[str]
    feedback: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
