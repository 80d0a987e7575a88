"""Custom exception classes"""

from typing import Any, Optional


class HirePathException(Exception):
    """Base exception for HirePath"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(HirePathException):
    """Exception for validation errors"""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class AuthenticationException(HirePathException):
    """Exception for authentication errors"""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, status_code=401)


class AuthorizationException(HirePathException):
    """Exception for authorization errors"""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


class NotFoundException(HirePathException):
    """Exception for resource not found errors"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ConflictException(HirePathException):
    """Exception for resource conflict errors"""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, status_code=409, details=details)


class InvalidTransitionException(ConflictException):
    """Exception for hiring status changes outside the transition table"""

    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        message = f"Cannot move from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"current_status": current, "target_status": target})


class ExternalServiceException(HirePathException):
    """Exception for external service errors"""

    def __init__(self, service: str, message: str):
        full_message = f"External service error ({service}): {message}"
        super().__init__(full_message, status_code=502)


class QuestionGenerationException(HirePathException):
    """Exception for failed assessment question generation"""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, status_code=500, details=details)
