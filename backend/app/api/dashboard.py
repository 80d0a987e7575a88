"""Dashboard API endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.security import require_candidate, require_staff
from backend.app.models.user import User
from backend.app.services.dashboard_service import DashboardService
from backend.app.schemas.dashboard import CandidateDashboardResponse, StaffOverviewResponse
from backend.app.schemas.progression import HiringStateResponse

router = APIRouter()


async def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    """Dependency to get dashboard service"""
    return DashboardService(db)


@router.get("/candidate", response_model=CandidateDashboardResponse)
async def candidate_dashboard(
    current_user: User = Depends(require_candidate),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Hiring state, recent assessment results, interviews and activity for the candidate"""
    data = await service.candidate_dashboard(current_user)
    return CandidateDashboardResponse(
        hiring_state=HiringStateResponse.from_state(data["hiring_state"], data["candidate_id"]),
        assessment_results=data["assessment_results"],
        interviews=data["interviews"],
        recent_activity=data["recent_activity"],
    )


@router.get("/overview", response_model=StaffOverviewResponse)
async def staff_overview(
    current_user: User = Depends(require_staff),
    service: DashboardService = Depends(get_dashboard_service)
):
    """
    Pipeline counts for staff

    Managers see candidate counts for the candidates assigned to them or in
    their region; every other figure is global.
    """
    return await service.staff_overview(current_user)
