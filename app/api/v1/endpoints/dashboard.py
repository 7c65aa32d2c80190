from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_current_user, get_dashboard_service
from app.schemas.activity_schema import Activity
from app.schemas.dashboard_schema import DashboardStats
from app.services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.get_stats()


@router.get("/activities", response_model=List[Activity])
async def latest_activities(svc: DashboardService = Depends(get_dashboard_service)):
    return await svc.latest_activities()
