from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupEnvelope, GroupListResponse, GroupDetailEnvelope,
    MemberListResponse, MemberRoleUpdate, MemberEnvelope
)
from app.modules.groups.service import GroupService
from app.core.dependencies import get_current_user, check_group_member, check_group_owner
from app.core.ids import PathId
from app.core.responses import ApiResponse, MessageData, ok, message
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.get("", response_model=ApiResponse[GroupListResponse])
async def list_groups(
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """List groups the current user belongs to"""
    return ok(GroupListResponse(groups=service.list_user_groups(user_data["id"])))


@router.post("", response_model=ApiResponse[GroupEnvelope], status_code=201)
async def create_group(
    group_data: GroupCreate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the creator becomes its owner"""
    return ok(GroupEnvelope(group=service.create_group(group_data, user_data["id"])))


@router.get("/{group_id}", response_model=ApiResponse[GroupDetailEnvelope])
async def get_group(
    group_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: GroupService = Depends(get_group_service)
):
    """Get group with members (members only)"""
    return ok(GroupDetailEnvelope(group=service.get_group_detail(group_id, membership)))


@router.put("/{group_id}", response_model=ApiResponse[GroupEnvelope])
async def update_group(
    group_id: PathId,
    group_data: GroupUpdate,
    membership: Dict = Depends(check_group_owner),
    service: GroupService = Depends(get_group_service)
):
    """Rename group (owner only)"""
    return ok(GroupEnvelope(group=service.update_group(group_id, group_data)))


@router.delete("/{group_id}", response_model=ApiResponse[MessageData])
async def delete_group(
    group_id: PathId,
    membership: Dict = Depends(check_group_owner),
    service: GroupService = Depends(get_group_service)
):
    """Delete group (owner only)"""
    service.delete_group(group_id)
    return message("Group deleted successfully")


@router.get("/{group_id}/members", response_model=ApiResponse[MemberListResponse])
async def list_members(
    group_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: GroupService = Depends(get_group_service)
):
    """List all members of a group (members only)"""
    return ok(MemberListResponse(members=service.list_members(group_id)))


@router.put("/{group_id}/members/{membership_id}", response_model=ApiResponse[MemberEnvelope])
async def update_member_role(
    group_id: PathId,
    membership_id: PathId,
    role_data: MemberRoleUpdate,
    membership: Dict = Depends(check_group_owner),
    service: GroupService = Depends(get_group_service)
):
    """Change a member's role between ADMIN and MEMBER (owner only)"""
    member = service.update_member_role(group_id, membership_id, membership, role_data.role)
    return ok(MemberEnvelope(member=member))


@router.delete("/{group_id}/members/{membership_id}", response_model=ApiResponse[MessageData])
async def remove_member(
    group_id: PathId,
    membership_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: GroupService = Depends(get_group_service)
):
    """Remove a member, or leave the group when the membership is the caller's own"""
    service.remove_member(group_id, membership_id, membership)
    return message("Member removed successfully")
