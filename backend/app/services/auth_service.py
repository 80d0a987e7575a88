"""Authentication service for JWT token management"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, jwt

from backend.app.core.config import settings
from backend.app.core.logging import get_logger
from backend.app.models.user import UserRole

logger = get_logger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class AuthService:
    """Issues and verifies access and refresh tokens"""

    def __init__(self):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.access_token_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.refresh_token_expire_days = settings.REFRESH_TOKEN_EXPIRE_DAYS

    def _encode(self, claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {**claims, "iat": now, "exp": now + lifetime, "type": token_type}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_access_token(
        self,
        user_id: str,
        username: str,
        role: UserRole,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Generate JWT access token

        Args:
            user_id: User ID
            username: Username
            role: User role, carried as the ``role`` claim
            expires_delta: Optional custom lifetime

        Returns:
            JWT token string
        """
        lifetime = expires_delta or timedelta(minutes=self.access_token_expire_minutes)
        token = self._encode(
            {"sub": str(user_id), "username": username, "role": role.value},
            ACCESS,
            lifetime,
        )
        logger.info(f"Created access token for user: {username}")
        return token

    def create_refresh_token(
        self,
        user_id: str,
        username: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        lifetime = expires_delta or timedelta(days=self.refresh_token_expire_days)
        token = self._encode({"sub": str(user_id), "username": username}, REFRESH, lifetime)
        logger.info(f"Created refresh token for user: {username}")
        return token

    def issue_tokens(self, user) -> Tuple[str, str]:
        """Access and refresh token pair for a user row"""
        return (
            self.create_access_token(str(user.id), user.username, user.role),
            self.create_refresh_token(str(user.id), user.username),
        )

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT token

        Returns the payload, or None when the signature is bad or the
        token has expired.
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token verification failed: {str(e)}")
            return None

    def _verify_typed(self, token: str, token_type: str) -> Optional[Dict[str, Any]]:
        payload = self.verify_token(token)
        if not payload:
            return None

        if payload.get("type") != token_type:
            logger.warning(f"Token is not an {token_type} token")
            return None

        return payload

    def verify_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        return self._verify_typed(token, ACCESS)

    def verify_refresh_token(self, token: str) -> Optional[Dict[str, Any]]:
        return self._verify_typed(token, REFRESH)

    def get_user_role_from_token(self, token: str) -> Optional[UserRole]:
        """Extract user role from an access token"""
        payload = self.verify_access_token(token)
        if not payload:
            return None
        try:
            return UserRole(payload.get("role"))
        except ValueError:
            return None


# Global auth service instance
auth_service = AuthService()
