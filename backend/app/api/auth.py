"""Authentication API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import get_current_user
from backend.app.repositories.activity_log_repository import ActivityLogRepository
from backend.app.repositories.candidate_repository import CandidateRepository
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.auth_service import auth_service
from backend.app.schemas.auth import (
    PasswordChange, UserCreate, UserLogin, TokenResponse, TokenRefresh, UserResponse
)
from backend.app.models.user import User, UserRole
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new candidate account

    Public registration always creates a **candidate**; staff accounts are
    created by an admin through `/api/v1/admin/users`. A candidate profile
    row is created alongside the user, starting at `profile_created`.

    ## Error Responses

    - **400 Bad Request**: Username or email already exists
    - **422 Unprocessable Entity**: Validation error (invalid format, missing fields)

    ## Example Usage

    ```bash
    curl -X POST "http://localhost:8000/api/v1/auth/register" \\
         -H "Content-Type: application/json" \\
         -d '{
           "username": "sam_sells",
           "email": "sam@example.com",
           "password": "SecurePass123!",
           "name": "Sam Rivera",
           "region": "south"
         }'
    ```
    """
    user_repo = UserRepository(db)

    if await user_repo.get_by_username(user_data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    if await user_repo.get_by_email(user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = await user_repo.create(
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        role=UserRole.CANDIDATE,
        name=user_data.name,
        region=user_data.region,
    )
    await CandidateRepository(db).create({"id": user.id, "region": user.region})
    await ActivityLogRepository(db).log("registered", "user", user.id, user_id=user.id)

    await db.commit()

    logger.info(f"User registered: {user.username}")
    return user


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate user and obtain JWT tokens

    Returns a short-lived **access_token** for the `Authorization: Bearer`
    header and a long-lived **refresh_token** for `/api/v1/auth/refresh`.

    ## Error Responses

    - **401 Unauthorized**: Invalid username or password
    """
    user_repo = UserRepository(db)
    user = await user_repo.authenticate(credentials.username, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, refresh_token = auth_service.issue_tokens(user)

    logger.info(f"User logged in: {user.username}")
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    token_data: TokenRefresh,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange a refresh token for a new token pair

    Access tokens are rejected here, and refresh tokens are rejected by
    every other endpoint.
    """
    payload = auth_service.verify_refresh_token(token_data.refresh_token)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserRepository(db).get_by_id(payload.get("sub"))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, refresh_token = auth_service.issue_tokens(user)

    logger.info(f"Token refreshed for user: {user.username}")
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current authenticated user information"""
    return current_user


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    payload: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user_repo = UserRepository(db)
    if not user_repo.verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    await user_repo.set_password(current_user, payload.new_password)
    await ActivityLogRepository(db).log("password_changed", "user", current_user.id, user_id=current_user.id)
    await db.commit()
