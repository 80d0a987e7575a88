"""Admin API endpoints: user management and the activity log"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import require_admin
from backend.app.models.user import User, UserRole
from backend.app.services.admin_service import AdminService
from backend.app.schemas.admin import (
    ActivityLogResponse, AdminUserCreate, AdminUserCreated, AdminUserUpdate, UserListResponse,
)
from backend.app.schemas.auth import UserResponse

router = APIRouter()


async def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    """Dependency to get admin service"""
    return AdminService(db)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    users, total = await service.list_users(role=role, skip=skip, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
        has_more=skip + len(users) < total,
    )


@router.post("/users", response_model=AdminUserCreated, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """
    Create a user with any role

    When `password` is omitted a random one is generated and returned once
    in `generated_password`.
    """
    user, generated = await service.create_user(payload.model_dump(), current_user)
    return AdminUserCreated(user=UserResponse.model_validate(user), generated_password=generated)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.get_user(user_id)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    payload: AdminUserUpdate,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return await service.update_user(user_id, payload.model_dump(exclude_unset=True), current_user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    await service.delete_user(user_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/activity", response_model=List[ActivityLogResponse])
async def list_activity(
    user_id: Optional[UUID] = Query(None),
    entity_type: Optional[str] = Query(None, max_length=50),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Audit trail, newest first"""
    return await service.list_activity(user_id=user_id, entity_type=entity_type, skip=skip, limit=limit)
