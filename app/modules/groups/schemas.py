from pydantic import Field
from typing import Optional, List
from datetime import datetime

from app.core.responses import CamelModel
from app.modules.groups.policy import GroupRole


class GroupCreate(CamelModel):
    name: str = Field(min_length=2, max_length=100)


class GroupUpdate(CamelModel):
    name: str = Field(min_length=2, max_length=100)


class GroupSummary(CamelModel):
    id: str
    name: str
    role: GroupRole
    member_count: int = 0
    game_count: int = 0
    created_at: datetime
    joined_at: Optional[datetime] = None


class GroupListResponse(CamelModel):
    groups: List[GroupSummary]


class GroupResponse(CamelModel):
    id: str
    name: str
    role: Optional[GroupRole] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class GroupEnvelope(CamelModel):
    group: GroupResponse


class GroupMemberResponse(CamelModel):
    id: str
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: GroupRole
    joined_at: datetime


class GroupPermissions(CamelModel):
    can_manage_members: bool
    can_change_roles: bool
    can_update_group: bool


class GroupDetailResponse(CamelModel):
    id: str
    name: str
    created_at: datetime
    game_count: int
    current_user_role: GroupRole
    permissions: GroupPermissions
    members: List[GroupMemberResponse]


class GroupDetailEnvelope(CamelModel):
    group: GroupDetailResponse


class MemberListResponse(CamelModel):
    members: List[GroupMemberResponse]


class MemberRoleUpdate(CamelModel):
    role: GroupRole


class MemberEnvelope(CamelModel):
    member: GroupMemberResponse
