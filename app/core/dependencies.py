"""
Core dependencies for route protection and group role checks
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.exceptions import (
    UnauthenticatedError, NotGroupMemberError, InsufficientGroupRoleError, NotGroupOwnerError
)
from app.database.supabase_client import get_supabase, get_supabase_auth, get_supabase_session_factory
from app.core.ids import PathId
from app.modules.auth.service import AuthService
from app.modules.groups.policy import GroupRole, is_admin_role
from supabase import Client
from typing import Callable, Optional, Dict, Any

security = HTTPBearer(auto_error=False)


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    auth_client: Client = Depends(get_supabase_auth),
    new_session: Callable[[], Client] = Depends(get_supabase_session_factory),
) -> AuthService:
    return AuthService(supabase, auth_client, new_session)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[str]:
    """Session token from the user cookie, falling back to an Authorization: Bearer header"""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def get_optional_user(
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    """Current user or None; used by public endpoints that only need a user to act"""
    if not token:
        return None
    try:
        return auth_service.get_current_user(token)
    except UnauthenticatedError:
        return None


def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Current user from the session token; 401 when missing or invalid"""
    if not token:
        raise UnauthenticatedError()
    return auth_service.get_current_user(token)


def get_membership(user_id: str, group_id: str, supabase: Client) -> Optional[Dict[str, Any]]:
    """Membership row for (group, user), or None"""
    result = supabase.table("group_members")\
        .select("*")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if not result.data:
        return None
    return result.data[0]


def require_group_member(user_id: str, group_id: str, supabase: Client) -> Dict[str, Any]:
    membership = get_membership(user_id, group_id, supabase)
    if membership is None:
        raise NotGroupMemberError()
    return membership


def require_group_admin(user_id: str, group_id: str, supabase: Client) -> Dict[str, Any]:
    membership = require_group_member(user_id, group_id, supabase)
    if not is_admin_role(GroupRole(membership["role"])):
        raise InsufficientGroupRoleError()
    return membership


def require_group_owner(user_id: str, group_id: str, supabase: Client) -> Dict[str, Any]:
    membership = require_group_member(user_id, group_id, supabase)
    if GroupRole(membership["role"]) is not GroupRole.OWNER:
        raise NotGroupOwnerError()
    return membership


def check_group_member(
    group_id: PathId,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
) -> Dict[str, Any]:
    """Route dependency: caller must be a member of the path's group; returns the membership"""
    return require_group_member(user_data["id"], group_id, supabase)


def check_group_admin(
    group_id: PathId,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
) -> Dict[str, Any]:
    """Route dependency: caller must be OWNER or ADMIN of the path's group"""
    return require_group_admin(user_data["id"], group_id, supabase)


def check_group_owner(
    group_id: PathId,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
) -> Dict[str, Any]:
    """Route dependency: caller must be OWNER of the path's group"""
    return require_group_owner(user_data["id"], group_id, supabase)


def require_admin(request: Request) -> str:
    """Admin realm guard: a signed admin session cookie, never a user token"""
    username = request.session.get("admin_user")
    if not username:
        raise UnauthenticatedError()
    return username
