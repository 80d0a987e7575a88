"""Pytest configuration and shared fixtures"""

import os

# Settings are read at import time, so the environment must be set first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from typing import AsyncGenerator, Optional
from unittest.mock import MagicMock
from uuid import uuid4

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.core.database import Base, get_db
from backend.app.main import app
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.user import Region, User, UserRole
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.auth_service import AuthService
from backend.app.services.s3_service import S3Service, get_s3_service

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "testpassword123"
PRESIGNED_URL = "https://s3.test/signed"

# Hashed once; bcrypt is slow
_PASSWORD_HASH = UserRepository.hash_password(TEST_PASSWORD)


@pytest.fixture
async def test_engine():
    """In-memory database shared by every connection of one test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def s3_client():
    """boto3 client stand-in behind the real S3Service"""
    client = MagicMock()
    client.generate_presigned_url.return_value = PRESIGNED_URL
    return client


@pytest.fixture
async def client(test_session_factory, s3_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app; each request gets its own session"""
    async def override_get_db():
        async with test_session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_s3_service] = lambda: S3Service(client=s3_client)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_test_user(
    db_session: AsyncSession,
    role: UserRole = UserRole.CANDIDATE,
    region: Optional[Region] = None,
    name: Optional[str] = None,
) -> User:
    """Insert a user; candidates also get their candidate row"""
    suffix = uuid4().hex[:8]
    user = User(
        id=uuid4(),
        username=f"{role.value}_{suffix}",
        email=f"{role.value}_{suffix}@example.com",
        name=name or f"Test {role.value.title()}",
        password_hash=_PASSWORD_HASH,
        role=role,
        region=region,
    )
    db_session.add(user)
    if role == UserRole.CANDIDATE:
        db_session.add(Candidate(id=user.id, region=region, status=CandidateStatus.PROFILE_CREATED))
    await db_session.commit()
    return user


def get_auth_headers(user: User) -> dict:
    """Bearer header with a fresh access token for ``user``"""
    token = AuthService().create_access_token(str(user.id), user.username, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db_session) -> User:
    return await create_test_user(db_session, UserRole.ADMIN)


@pytest.fixture
async def hr_user(db_session) -> User:
    return await create_test_user(db_session, UserRole.HR)


@pytest.fixture
async def manager_user(db_session) -> User:
    return await create_test_user(db_session, UserRole.MANAGER, region=Region.NORTH)


@pytest.fixture
async def candidate_user(db_session) -> User:
    return await create_test_user(db_session, UserRole.CANDIDATE, region=Region.NORTH)


@pytest.fixture
def role_user(request):
    """Resolve the role fixture named by an indirect ``role_user`` parameter"""
    return request.getfixturevalue(request.param)


@pytest.fixture
def auth_headers():
    """``auth_headers(user)`` returns a bearer header for that user"""
    return get_auth_headers


@pytest.fixture
def make_user(db_session):
    """Factory for extra users beyond the role fixtures"""
    async def _make(role: UserRole = UserRole.CANDIDATE, region: Optional[Region] = None, name: Optional[str] = None):
        return await create_test_user(db_session, role, region, name)
    return _make
