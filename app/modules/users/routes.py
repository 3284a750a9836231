from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.core.dependencies import get_current_user, require_group_member
from app.core.ids import UUID_PATTERN
from app.core.responses import ApiResponse, ok
from app.modules.users.schemas import UserSearchResponse
from app.modules.users.service import UserService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/search", response_model=ApiResponse[UserSearchResponse])
async def search_users(
    q: str = "",
    group_id: Optional[str] = Query(None, alias="groupId", pattern=UUID_PATTERN),
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    supabase: Client = Depends(get_supabase)
):
    """Find users to invite by name or email (at least two characters)"""
    if group_id:
        require_group_member(user_data["id"], group_id, supabase)
    users = service.search_users(user_data["id"], q, group_id)
    return ok(UserSearchResponse(users=users))
