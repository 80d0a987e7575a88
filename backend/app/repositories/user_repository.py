"""User repository for database operations"""

from typing import Optional, List
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from passlib.context import CryptContext

from backend.app.models.user import Region, User, UserRole
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserRepository:
    """Repository for User CRUD operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt"""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    async def create(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.CANDIDATE,
        name: Optional[str] = None,
        region: Optional[Region] = None,
    ) -> User:
        """Create a new user with a hashed password"""
        user = User(
            username=username,
            email=email,
            name=name,
            password_hash=self.hash_password(password),
            role=role,
            region=region,
        )

        self.session.add(user)
        await self.session.flush()

        logger.info(f"Created user: {user.username} with role {user.role.value}")
        return user

    async def get_by_id(self, user_id) -> Optional[User]:
        if isinstance(user_id, str):
            try:
                user_id = UUID(user_id)
            except ValueError:
                return None
        return await self.session.get(User, user_id)

    async def get_many(self, user_ids: List[UUID]) -> List[User]:
        if not user_ids:
            return []
        result = await self.session.execute(select(User).where(User.id.in_(list(user_ids))))
        return list(result.scalars().all())

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def list_all(
        self,
        role: Optional[UserRole] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        """List users, newest first, optionally by role"""
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        stmt = stmt.order_by(User.created_at.desc()).offset(skip).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, role: Optional[UserRole] = None) -> int:
        stmt = select(func.count(User.id))
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def set_password(self, user: User, password: str) -> None:
        user.password_hash = self.hash_password(password)
        await self.session.flush()

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.flush()
        logger.info(f"Deleted user: {user.username}")

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """Authenticate user by username and password"""
        user = await self.get_by_username(username)

        if not user:
            logger.warning(f"Authentication failed: user {username} not found")
            return None

        if not self.verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed: invalid password for {username}")
            return None

        logger.info(f"User authenticated: {username}")
        return user
