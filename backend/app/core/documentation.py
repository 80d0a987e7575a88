"""OpenAPI schema customisation"""

from typing import Dict, Any
from fastapi.openapi.utils import get_openapi
from fastapi import FastAPI

from backend.app.core.config import settings


API_DESCRIPTION = """
## HirePath - Recruiting and Candidate Onboarding

Candidates register, upload a resume and two short videos, apply to jobs,
work through training modules and quizzes, take assessments and meet a
manager. Staff move applications through the hiring pipeline.

### Hiring journey

| Step | Name | Done when |
|------|------|-----------|
| 1 | Application | Resume, both videos, phone and location are in |
| 2 | Review | HR approved the application |
| 3 | Training | Every required module is completed |
| 4 | Interview | A manager interviewed the candidate |
| 5 | Decision | The candidate was hired |

### Authentication

1. Register at `/api/v1/auth/register` (candidates only; staff accounts are created by an admin)
2. Log in at `/api/v1/auth/login` to get an access and a refresh token
3. Send `Authorization: Bearer <access token>`

### Roles

* **admin**: Everything, including users and training content
* **hr**: Jobs, assessments and application review
* **manager**: Candidates assigned to them or in their region, interviews
* **director**: Read-only pipeline views
* **candidate**: Their own application, training and assessments

### Rate Limiting

Requests are limited to {rate_limit} per minute per client IP.
"""

OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Registration, login and token refresh"},
    {"name": "Jobs", "description": "Job postings and applying"},
    {"name": "Applications", "description": "Application review and hiring status changes"},
    {"name": "Candidates", "description": "Candidate profiles, uploads and hiring state"},
    {"name": "Training", "description": "Training modules, videos, quizzes and progress"},
    {"name": "Assessments", "description": "Assessments, attempts, results and question generation"},
    {"name": "Interviews", "description": "Manager interview scheduling and outcomes"},
    {"name": "Dashboard", "description": "Candidate and staff overviews"},
    {"name": "Admin", "description": "User management and the activity log"},
    {"name": "Tasks", "description": "Background task scheduling and status"},
]

ERROR_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "error": {"type": "string", "description": "Human-readable error message"},
        "details": {
            "type": "object",
            "description": "Additional error details",
            "additionalProperties": True,
        },
        "request_id": {"type": "string", "description": "Request identifier, echoed in X-Request-ID"},
    },
    "required": ["error", "request_id"],
    "example": {
        "error": "Cannot move from 'hr_review' to 'hired'",
        "details": {"current_status": "hr_review", "target_status": "hired"},
        "request_id": "123e4567-e89b-12d3-a456-426614174000",
    },
}


def get_api_description() -> str:
    return API_DESCRIPTION.format(rate_limit=settings.RATE_LIMIT_PER_MINUTE)


def get_custom_openapi(app: FastAPI) -> Dict[str, Any]:
    """Build the OpenAPI schema once, with bearer auth and the shared error body"""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=get_api_description(),
        routes=app.routes,
        tags=OPENAPI_TAGS,
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
        "description": "Access token from /api/v1/auth/login",
    }
    components.setdefault("schemas", {})["ErrorResponse"] = ERROR_RESPONSE_SCHEMA

    app.openapi_schema = openapi_schema
    return app.openapi_schema
