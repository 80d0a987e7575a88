"""Admin user management"""

import secrets
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConflictException, NotFoundException, ValidationException
from backend.app.core.logging import get_logger
from backend.app.models.activity_log import ActivityLog
from backend.app.models.user import User, UserRole
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.candidate_repository import CandidateRepository
from backend.app.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class AdminService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.candidates = CandidateRepository(db)
        self.activity = ActivityLogRepository(db)

    async def get_user(self, user_id: UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise NotFoundException(f"User not found: {user_id}")
        return user

    async def list_users(
        self, role: Optional[UserRole] = None, skip: int = 0, limit: int = 100
    ) -> Tuple[List[User], int]:
        users = await self.users.list_all(role=role, skip=skip, limit=limit)
        return users, await self.users.count(role=role)

    async def list_activity(self, **filters) -> List[ActivityLog]:
        return await self.activity.list_recent(**filters)

    async def _ensure_candidate_row(self, user: User) -> None:
        if user.role == UserRole.CANDIDATE and not await self.candidates.get_by_id(user.id):
            await self.candidates.create({"id": user.id, "region": user.region})

    async def create_user(self, data: Dict[str, Any], actor: User) -> Tuple[User, Optional[str]]:
        """
        Create a user of any role

        Returns:
            (user, generated password or None when one was supplied)
        """
        if await self.users.get_by_username(data["username"]):
            raise ConflictException("Username already registered")
        if await self.users.get_by_email(data["email"]):
            raise ConflictException("Email already registered")

        generated = None
        password = data.get("password")
        if not password:
            password = generated = secrets.token_urlsafe(12)

        user = await self.users.create(
            username=data["username"],
            email=data["email"],
            password=password,
            role=data.get("role") or UserRole.CANDIDATE,
            name=data.get("name"),
            region=data.get("region"),
        )
        await self._ensure_candidate_row(user)

        await self.activity.log(
            "user_created", "user", user.id, user_id=actor.id,
            details={"username": user.username, "role": user.role.value},
        )
        await self.db.commit()
        return user, generated

    async def update_user(self, user_id: UUID, updates: Dict[str, Any], actor: User) -> User:
        user = await self.get_user(user_id)

        email = updates.get("email")
        if email and email != user.email and await self.users.get_by_email(email):
            raise ConflictException("Email already registered")
        if user.id == actor.id and updates.get("role") not in (None, UserRole.ADMIN):
            raise ValidationException("Admins cannot remove their own admin role")

        password = updates.pop("password", None)
        for key in ("name", "email", "role", "region"):
            if key in updates:
                setattr(user, key, updates[key])
        if password:
            await self.users.set_password(user, password)
        await self.db.flush()
        await self._ensure_candidate_row(user)

        changed = sorted(updates) + (["password"] if password else [])
        await self.activity.log("user_updated", "user", user.id, user_id=actor.id, details={"fields": changed})
        await self.db.commit()
        return user

    async def delete_user(self, user_id: UUID, actor: User) -> None:
        user = await self.get_user(user_id)
        if user.id == actor.id:
            raise ValidationException("Admins cannot delete themselves")

        username = user.username
        candidate = await self.candidates.get_by_id(user.id)
        if candidate is not None:
            await self.db.delete(candidate)
        await self.users.delete(user)

        await self.activity.log("user_deleted", "user", user_id, user_id=actor.id, details={"username": username})
        await self.db.commit()
        logger.info(f"User {username} deleted by {actor.username}")
