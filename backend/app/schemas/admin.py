"""Admin user management and activity log schemas"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, ConfigDict

from backend.app.models.user import Region, UserRole
from backend.app.schemas.auth import UserResponse


class AdminUserCreate(BaseModel):
    """Request schema for an admin creating a user of any role"""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=8, max_length=100, description="Generated when omitted")
    name: Optional[str] = Field(None, max_length=255)
    role: UserRole = UserRole.CANDIDATE
    region: Optional[Region] = None


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    region: Optional[Region] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)


class AdminUserCreated(BaseModel):
    """A new user, with the generated password when one was generated"""
    user: UserResponse
    generated_password: Optional[str] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class ActivityLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID]
    action: str
    entity_type: str
    entity_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
