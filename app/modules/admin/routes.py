from fastapi import APIRouter, Depends, Query, Request
from app.database.supabase_client import get_supabase
from app.modules.admin.schemas import AdminLogin, AdminSession, AdminSessionEnvelope, AdminStats, AdminUserList, AdminGroupList
from app.modules.admin.service import AdminService, verify_admin_credentials
from app.core.dependencies import require_admin
from app.core.exceptions import UnauthenticatedError
from app.core.ids import PathId
from app.core.responses import ApiResponse, MessageData, ok, message
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_supabase)) -> AdminService:
    return AdminService(supabase)


@router.post("/auth/login", response_model=ApiResponse[AdminSessionEnvelope])
async def admin_login(request: Request, credentials: AdminLogin):
    """Open a back-office session (signed cookie, separate from user sessions)"""
    if not verify_admin_credentials(credentials.username, credentials.password):
        logger.warning("Failed admin login attempt")
        raise UnauthenticatedError("Invalid credentials")
    request.session["admin_user"] = credentials.username.strip()
    logger.info(f"Admin {credentials.username.strip()} logged in")
    return ok(AdminSessionEnvelope(admin=AdminSession(username=credentials.username.strip())))


@router.post("/auth/logout", response_model=ApiResponse[MessageData])
async def admin_logout(request: Request):
    request.session.pop("admin_user", None)
    return message("Logged out")


@router.get("/auth/me", response_model=ApiResponse[AdminSessionEnvelope])
async def admin_me(username: str = Depends(require_admin)):
    return ok(AdminSessionEnvelope(admin=AdminSession(username=username)))


@router.get("/stats", response_model=ApiResponse[AdminStats])
async def admin_stats(
    username: str = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return ok(service.get_stats())


@router.get("/users", response_model=ApiResponse[AdminUserList])
async def admin_list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    username: str = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Paginated users, newest first; search matches name or email"""
    return ok(service.list_users(page, limit, search))


@router.delete("/users/{user_id}", response_model=ApiResponse[MessageData])
async def admin_delete_user(
    user_id: PathId,
    username: str = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    service.delete_user(user_id)
    return message("User deleted successfully")


@router.get("/groups", response_model=ApiResponse[AdminGroupList])
async def admin_list_groups(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    username: str = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Paginated groups, newest first; search matches the name"""
    return ok(service.list_groups(page, limit, search))


@router.delete("/groups/{group_id}", response_model=ApiResponse[MessageData])
async def admin_delete_group(
    group_id: PathId,
    username: str = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    service.delete_group(group_id)
    return message("Group deleted successfully")
