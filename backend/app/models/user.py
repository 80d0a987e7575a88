"""User model"""

from sqlalchemy import Column, String, Uuid
from backend.app.core.database import Base
from backend.app.models.base import TimestampMixin, enum_type
import uuid
import enum


class UserRole(str, enum.Enum):
    """User role enumeration"""
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    DIRECTOR = "director"
    CANDIDATE = "candidate"


class Region(str, enum.Enum):
    """Sales region enumeration"""
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    CENTRAL = "central"


STAFF_ROLES = (UserRole.ADMIN, UserRole.HR, UserRole.MANAGER, UserRole.DIRECTOR)


class User(Base, TimestampMixin):
    """User model for authentication and authorization"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(enum_type(UserRole, "userrole"), nullable=False, default=UserRole.CANDIDATE)
    region = Column(enum_type(Region, "region"), nullable=True)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
