from pydantic import EmailStr, model_validator
from typing import Optional, List
from datetime import datetime

from app.core.ids import UuidStr
from app.core.responses import CamelModel
from app.modules.invites.lifecycle import InviteStatus
from app.modules.users.schemas import UserRef


class InviteCreate(CamelModel):
    invitee_id: Optional[UuidStr] = None
    invitee_email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def exactly_one_target(self):
        has_id = bool(self.invitee_id and self.invitee_id.strip())
        has_email = bool(self.invitee_email)
        if has_id == has_email:
            raise ValueError("Provide either inviteeId or inviteeEmail, not both")
        return self


class InviteRespond(CamelModel):
    accept: bool


class GroupRef(CamelModel):
    id: str
    name: str
    member_count: Optional[int] = None


class InviteResponse(CamelModel):
    id: str
    invitee_email: Optional[str] = None
    invitee_id: Optional[str] = None
    invitee_name: Optional[str] = None
    inviter: Optional[UserRef] = None
    group_name: Optional[str] = None
    status: InviteStatus
    token: str
    invite_link: Optional[str] = None
    expires_at: datetime
    created_at: datetime


class InviteEnvelope(CamelModel):
    invite: InviteResponse


class InviteListResponse(CamelModel):
    invites: List[InviteResponse]


class InvitePreview(CamelModel):
    id: str
    invitee_email: Optional[str] = None
    status: InviteStatus
    is_valid: bool
    group: GroupRef
    inviter: Optional[UserRef] = None
    expires_at: datetime
    created_at: datetime


class InvitePreviewEnvelope(CamelModel):
    invite: InvitePreview


class InviteResult(CamelModel):
    message: str
    group: Optional[GroupRef] = None


class UserInvite(CamelModel):
    id: str
    group: GroupRef
    inviter: Optional[UserRef] = None
    status: InviteStatus
    seen_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime


class UserInviteListResponse(CamelModel):
    invites: List[UserInvite]
    unseen_count: int


class UserInviteHistoryResponse(CamelModel):
    invites: List[UserInvite]


class PublicInviteResponse(CamelModel):
    enabled: bool
    invite_link: Optional[str] = None


class PublicGroupPreview(CamelModel):
    group: GroupRef
