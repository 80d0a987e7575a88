"""Authentication dependencies: bearer tokens, role checks and the candidate profile"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.models.candidate import Candidate
from backend.app.models.user import User, UserRole
from backend.app.repositories.user_repository import UserRepository
from backend.app.services.auth_service import auth_service
from backend.app.services.pipeline_service import PipelineService
from backend.app.core.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the user behind a bearer access token

    The token's ``role`` claim must still match the stored role, so a
    token issued before an admin changed the user's role stops working.

    Raises:
        HTTPException: 401 for a bad token, an unknown user or a stale role
    """
    payload = auth_service.verify_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        logger.warning("Invalid or expired token")
        raise _unauthorized("Invalid or expired token")

    user_id = payload["sub"]
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        logger.warning(f"User not found: {user_id}")
        raise _unauthorized("User not found")

    if payload.get("role") != user.role.value:
        logger.warning(
            f"Token role {payload.get('role')} no longer matches {user.role.value}",
            extra={"user_id": str(user.id)},
        )
        raise _unauthorized("Role has changed, sign in again")

    return user


class RoleChecker:
    """Dependency that admits only the given roles"""

    def __init__(self, allowed_roles: list[UserRole]):
        self.allowed_roles = allowed_roles

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in self.allowed_roles:
            allowed = [r.value for r in self.allowed_roles]
            logger.warning(
                f"{current_user.role.value} user {current_user.username} refused, needs one of {allowed}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {allowed}"
            )

        return current_user


require_admin = RoleChecker([UserRole.ADMIN])
require_hr = RoleChecker([UserRole.ADMIN, UserRole.HR])
require_reviewer = RoleChecker([UserRole.ADMIN, UserRole.HR, UserRole.MANAGER])
require_staff = RoleChecker([UserRole.ADMIN, UserRole.HR, UserRole.MANAGER, UserRole.DIRECTOR])
require_candidate = RoleChecker([UserRole.CANDIDATE])


async def get_current_candidate(
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db)
) -> Candidate:
    """Candidate row of the signed-in candidate, created on first use"""
    return await PipelineService(db).ensure_candidate(current_user)
