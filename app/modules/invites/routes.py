from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.invites.schemas import (
    InviteCreate, InviteRespond, InviteEnvelope, InviteListResponse, InvitePreviewEnvelope,
    InviteResult, UserInviteListResponse, UserInviteHistoryResponse, PublicInviteResponse,
    PublicGroupPreview
)
from app.modules.invites.service import InviteService
from app.core.dependencies import get_current_user, get_optional_user, check_group_member, check_group_admin
from app.core.exceptions import UnauthenticatedError
from app.core.ids import PathId
from app.core.responses import ApiResponse, MessageData, ok, message
from supabase import Client
from typing import Dict, Optional

# /groups/{group_id}/invites and /groups/{group_id}/public-invite
group_router = APIRouter(prefix="/groups/{group_id}", tags=["invites"])
# /invites/{token} and /join/{token}: readable without a session
public_router = APIRouter(tags=["invites"])
# /user/invites: the signed-in user's inbox
inbox_router = APIRouter(prefix="/user/invites", tags=["invites"])

SIGN_IN_REQUIRED = "Please sign in to respond to this invite"


def get_invite_service(supabase: Client = Depends(get_supabase)) -> InviteService:
    return InviteService(supabase)


def require_signed_in(user_data: Optional[Dict]) -> Dict:
    if user_data is None:
        raise UnauthenticatedError(SIGN_IN_REQUIRED)
    return user_data


@group_router.get("/invites", response_model=ApiResponse[InviteListResponse])
async def list_group_invites(
    group_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: InviteService = Depends(get_invite_service)
):
    """Pending invites of a group (members)"""
    return ok(InviteListResponse(invites=service.list_group_invites(group_id)))


@group_router.post("/invites", response_model=ApiResponse[InviteEnvelope], status_code=201)
async def create_invite(
    group_id: PathId,
    invite_data: InviteCreate,
    membership: Dict = Depends(check_group_admin),
    service: InviteService = Depends(get_invite_service)
):
    """Invite a user by id or an address by email (owner/admin)"""
    invite = service.create_invite(group_id, membership["user_id"], invite_data)
    return ok(InviteEnvelope(invite=invite))


@group_router.delete("/invites/{invite_id}", response_model=ApiResponse[MessageData])
async def cancel_invite(
    group_id: PathId,
    invite_id: PathId,
    membership: Dict = Depends(check_group_admin),
    service: InviteService = Depends(get_invite_service)
):
    """Withdraw a pending invite (owner/admin)"""
    service.cancel_invite(group_id, invite_id)
    return message("Invite cancelled")


@group_router.get("/public-invite", response_model=ApiResponse[PublicInviteResponse])
async def get_public_invite(
    group_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: InviteService = Depends(get_invite_service)
):
    return ok(service.get_public_invite(group_id))


@group_router.post("/public-invite", response_model=ApiResponse[PublicInviteResponse])
async def regenerate_public_invite(
    group_id: PathId,
    membership: Dict = Depends(check_group_admin),
    service: InviteService = Depends(get_invite_service)
):
    """Create or rotate the group's public join link (owner/admin)"""
    return ok(service.regenerate_public_invite(group_id))


@group_router.delete("/public-invite", response_model=ApiResponse[PublicInviteResponse])
async def disable_public_invite(
    group_id: PathId,
    membership: Dict = Depends(check_group_admin),
    service: InviteService = Depends(get_invite_service)
):
    return ok(service.disable_public_invite(group_id))


@public_router.get("/invites/{token}", response_model=ApiResponse[InvitePreviewEnvelope])
async def preview_invite(
    token: str,
    service: InviteService = Depends(get_invite_service)
):
    """Invite details by token; no session needed"""
    return ok(InvitePreviewEnvelope(invite=service.preview_invite(token)))


@public_router.post("/invites/{token}", response_model=ApiResponse[InviteResult])
async def respond_to_invite(
    token: str,
    respond_data: InviteRespond,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: InviteService = Depends(get_invite_service)
):
    """Accept or decline an invite by token"""
    user = require_signed_in(user_data)
    return ok(service.respond_by_token(token, user, respond_data.accept))


@public_router.get("/join/{token}", response_model=ApiResponse[PublicGroupPreview])
async def preview_public_invite(
    token: str,
    service: InviteService = Depends(get_invite_service)
):
    return ok(PublicGroupPreview(group=service.preview_public_invite(token)))


@public_router.post("/join/{token}", response_model=ApiResponse[InviteResult])
async def join_with_public_invite(
    token: str,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: InviteService = Depends(get_invite_service)
):
    """Join a group through its public link"""
    if user_data is None:
        raise UnauthenticatedError("Please sign in to join this group")
    return ok(service.join_with_public_token(token, user_data["id"]))


@inbox_router.get("", response_model=ApiResponse[UserInviteListResponse])
async def list_my_invites(
    user_data: Dict = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service)
):
    """Pending in-app invites for the current user"""
    return ok(service.list_user_invites(user_data["id"]))


@inbox_router.get("/history", response_model=ApiResponse[UserInviteHistoryResponse])
async def invite_history(
    user_data: Dict = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service)
):
    return ok(UserInviteHistoryResponse(invites=service.list_invite_history(user_data["id"])))


@inbox_router.post("/mark-seen", response_model=ApiResponse[MessageData])
async def mark_invites_seen(
    user_data: Dict = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service)
):
    service.mark_seen(user_data["id"])
    return message("Invites marked as seen")


@inbox_router.post("/{invite_id}/respond", response_model=ApiResponse[InviteResult])
async def respond_to_my_invite(
    invite_id: PathId,
    respond_data: InviteRespond,
    user_data: Dict = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service)
):
    """Accept or decline an in-app invite from the inbox"""
    return ok(service.respond_by_id(invite_id, user_data, respond_data.accept))
