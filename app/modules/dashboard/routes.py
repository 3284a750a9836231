from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.dashboard.schemas import UserDashboardEnvelope, GroupDashboardEnvelope
from app.modules.dashboard.service import DashboardService
from app.core.dependencies import get_current_user, check_group_member
from app.core.ids import PathId, UUID_PATTERN
from app.core.responses import ApiResponse, ok
from supabase import Client
from typing import Dict, Optional
from datetime import datetime

router = APIRouter(tags=["dashboard"])


def get_dashboard_service(supabase: Client = Depends(get_supabase)) -> DashboardService:
    return DashboardService(supabase)


@router.get("/dashboard", response_model=ApiResponse[UserDashboardEnvelope])
async def user_dashboard(
    group_id: Optional[str] = Query(None, alias="groupId", pattern=UUID_PATTERN),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_data: Dict = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Current user's results across their groups"""
    dashboard = service.user_dashboard(user_data["id"], group_id, start_date, end_date)
    return ok(UserDashboardEnvelope(dashboard=dashboard))


@router.get("/groups/{group_id}/dashboard", response_model=ApiResponse[GroupDashboardEnvelope])
async def group_dashboard(
    group_id: PathId,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    membership: Dict = Depends(check_group_member),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Group totals and player standings (members)"""
    return ok(GroupDashboardEnvelope(dashboard=service.group_dashboard(group_id, start_date, end_date)))
