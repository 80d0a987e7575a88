"""Training module, video and quiz schemas"""

from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, ConfigDict

from backend.app.schemas.progression import ModuleProgressResponse


class ModuleCreateRequest(BaseModel):
    """Request schema for creating a training module"""
    title: str = Field(..., min_length=1, max_length=255)
    module: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+$", description="Unique slug")
    description: Optional[str] = None
    content: Optional[str] = None
    position: Optional[int] = Field(None, ge=0, description="Defaults to the end of the list")
    quiz_assessment_id: Optional[UUID] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Module title cannot be empty')
        return v.strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Product Knowledge",
                "module": "product",
                "description": "Everything about what we sell",
                "position": 1
            }
        }
    )


class ModuleUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    module: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+$")
    description: Optional[str] = None
    content: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)
    archived: Optional[bool] = None
    quiz_assessment_id: Optional[UUID] = None


class VideoCreateRequest(BaseModel):
    """Request schema for adding a video by URL"""
    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)
    description: Optional[str] = None
    duration: Optional[str] = Field(None, max_length=20, description="e.g. 12:30")
    thumbnail: Optional[str] = Field(None, max_length=1000)
    position: Optional[int] = Field(None, ge=0)


class VideoUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1, max_length=1000)
    description: Optional[str] = None
    duration: Optional[str] = Field(None, max_length=20)
    thumbnail: Optional[str] = Field(None, max_length=1000)
    position: Optional[int] = Field(None, ge=0)
    archived: Optional[bool] = None
    module_id: Optional[UUID] = None


class VideoResponse(BaseModel):
    """Response schema for a training video"""
    id: UUID
    module_id: UUID
    title: str
    description: Optional[str]
    url: str
    duration: Optional[str]
    thumbnail: Optional[str]
    file_size: Optional[int]
    position: int
    archived: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ModuleResponse(BaseModel):
    """Response schema for a training module"""
    id: UUID
    title: str
    module: str
    description: Optional[str]
    content: Optional[str]
    position: int
    archived: bool
    quiz_assessment_id: Optional[UUID]
    videos: List[VideoResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CandidateModuleResponse(BaseModel):
    """A module as a candidate sees it, with their own progress"""
    module: ModuleResponse
    progress: ModuleProgressResponse


class VideoProgressRequest(BaseModel):
    completed: bool = Field(True, description="Video watched to the end")
    time_spent: int = Field(0, ge=0, description="Seconds watched since the last report")


class VideoProgressResponse(BaseModel):
    id: UUID
    video_id: UUID
    module_id: UUID
    completed: bool
    time_spent: int
    started_at: datetime
    completed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class QuizSubmitRequest(BaseModel):
    """Chosen option index per question id"""
    answers: Dict[UUID, int] = Field(..., min_length=1)

    @field_validator('answers')
    @classmethod
    def validate_answers(cls, v):
        if any(choice < 0 for choice in v.values()):
            raise ValueError('Answer indexes cannot be negative')
        return v


class QuizResultResponse(BaseModel):
    """Response schema for a graded quiz attempt"""
    id: UUID
    module_id: UUID
    score: int
    total_questions: int
    passed: bool
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)
