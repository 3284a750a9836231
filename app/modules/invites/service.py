from supabase import Client
from postgrest.exceptions import APIError
from app.config import settings
from app.core.exceptions import NotFoundError, ServerError, ValidationFailedError
from app.modules.groups.policy import GroupRole
from app.modules.invites.lifecycle import (
    InviteStatus, TERMINAL_STATUSES, check_can_respond, effective_status, expiration_from,
    generate_invite_token, needs_expiry, utcnow
)
from app.modules.invites.schemas import (
    InviteCreate, InviteResponse, InvitePreview, InviteResult, GroupRef, UserInvite,
    UserInviteListResponse, PublicInviteResponse
)
from app.modules.users.schemas import UserRef
from app.modules.users.service import UserService
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50
UNIQUE_VIOLATION = "23505"


def invite_link(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/invites/{token}"


def join_link(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/join/{token}"


class InviteService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    # ---- lazy expiry -------------------------------------------------------

    def expire_lapsed(self, invites: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Persist EXPIRED for pending invites past their expiry; returns the rows with resolved status.

        The update is conditional on the row still being PENDING, so a
        concurrent accept/decline is never overwritten.
        """
        now = now or utcnow()
        invites = list(invites)
        lapsed_ids = [i["id"] for i in invites if needs_expiry(i, now)]
        if lapsed_ids:
            self.supabase.table("group_invites")\
                .update({"status": InviteStatus.EXPIRED.value})\
                .in_("id", lapsed_ids)\
                .eq("status", InviteStatus.PENDING.value)\
                .lte("expires_at", now.isoformat())\
                .execute()
            logger.info(f"Expired {len(lapsed_ids)} lapsed invite(s)")
        resolved = []
        for invite in invites:
            if invite["id"] in lapsed_ids:
                invite = {**invite, "status": InviteStatus.EXPIRED.value}
            resolved.append(invite)
        return resolved

    def resolve(self, invite: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.expire_lapsed([invite], now)[0]

    # ---- lookups -----------------------------------------------------------

    def get_invite_by_id(self, invite_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("group_invites")\
            .select("*")\
            .eq("id", invite_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_invite_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("group_invites")\
            .select("*")\
            .eq("token", token)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_groups(self, group_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(set(group_ids))
        if not ids:
            return {}
        result = self.supabase.table("groups")\
            .select("id, name")\
            .in_("id", ids)\
            .execute()
        return {g["id"]: g for g in (result.data or [])}

    def count_members(self, group_id: str) -> int:
        result = self.supabase.table("group_members")\
            .select("id", count="exact")\
            .eq("group_id", group_id)\
            .execute()
        return result.count if result.count is not None else len(result.data or [])

    def is_member(self, group_id: str, user_id: str) -> bool:
        result = self.supabase.table("group_members")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return bool(result.data)

    # ---- group-scoped invites ----------------------------------------------

    def list_group_invites(self, group_id: str) -> List[InviteResponse]:
        """Pending invites of a group, newest first; lapsed ones are expired on the way"""
        try:
            result = self.supabase.table("group_invites")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("status", InviteStatus.PENDING.value)\
                .order("created_at", desc=True)\
                .execute()
            invites = [
                i for i in self.expire_lapsed(result.data or [])
                if i["status"] == InviteStatus.PENDING.value
            ]
            profiles = self.users.get_profiles(
                [i["inviter_id"] for i in invites] + [i["invitee_id"] for i in invites if i.get("invitee_id")]
            )
            return [self._invite_response(i, profiles) for i in invites]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get invites error: {e}")
            raise ServerError("Failed to get invites")

    def create_invite(self, group_id: str, inviter_id: str, invite_data: InviteCreate) -> InviteResponse:
        """Invite a known user (in-app) or an email address to a group"""
        try:
            now = utcnow()
            group = self.supabase.table("groups")\
                .select("id, name")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()
            if not group.data:
                raise NotFoundError("Group not found")

            invitee_id = None
            invitee_email = None
            if invite_data.invitee_id:
                invitee_id = invite_data.invitee_id.strip()
                self.users.get_user_by_id(invitee_id)
                if self.is_member(group_id, invitee_id):
                    raise ValidationFailedError("User is already a member of this group")
                target_column, target_value = "invitee_id", invitee_id
                duplicate_message = "A pending invite already exists for this user"
            else:
                invitee_email = str(invite_data.invitee_email).strip().lower()
                existing_user = self.users.get_user_by_email(invitee_email)
                if existing_user and self.is_member(group_id, existing_user["id"]):
                    raise ValidationFailedError("User is already a member of this group")
                target_column, target_value = "invitee_email", invitee_email
                duplicate_message = "A pending invite already exists for this email"

            pending = self.supabase.table("group_invites")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq(target_column, target_value)\
                .eq("status", InviteStatus.PENDING.value)\
                .execute()
            still_pending = [
                i for i in self.expire_lapsed(pending.data or [], now)
                if i["status"] == InviteStatus.PENDING.value
            ]
            if still_pending:
                raise ValidationFailedError(duplicate_message)

            result = self.supabase.table("group_invites").insert({
                "group_id": group_id,
                "inviter_id": inviter_id,
                "invitee_id": invitee_id,
                "invitee_email": invitee_email,
                "status": InviteStatus.PENDING.value,
                "token": generate_invite_token(),
                "expires_at": expiration_from(now, settings.invite_expiry_days).isoformat(),
            }).execute()

            if not result.data:
                raise ServerError("Failed to create invite")

            invite = result.data[0]
            logger.info(f"Invite {invite['id']} to group {group_id} created by {inviter_id}")
            profiles = self.users.get_profiles([inviter_id, invitee_id])
            response = self._invite_response(invite, profiles)
            response.group_name = group.data[0]["name"]
            # Email invites travel as a link; in-app invites show up in the inbox
            response.invite_link = invite_link(invite["token"]) if invitee_email else None
            return response
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Create invite error: {e}")
            raise ServerError("Failed to create invite")

    def cancel_invite(self, group_id: str, invite_id: str) -> bool:
        """Withdraw a pending invite"""
        try:
            invite = self.get_invite_by_id(invite_id)
            if invite is None or invite["group_id"] != group_id:
                raise NotFoundError("Invite not found")
            invite = self.resolve(invite)
            if invite["status"] != InviteStatus.PENDING.value:
                raise NotFoundError("Invite is no longer pending")

            self.supabase.table("group_invites")\
                .delete()\
                .eq("id", invite_id)\
                .eq("status", InviteStatus.PENDING.value)\
                .execute()
            logger.info(f"Invite {invite_id} cancelled")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Cancel invite error: {e}")
            raise ServerError("Failed to cancel invite")

    # ---- token flows -------------------------------------------------------

    def preview_invite(self, token: str) -> InvitePreview:
        """Public read of an invite by token: group, inviter and effective status"""
        try:
            invite = self.get_invite_by_token(token)
            if invite is None:
                raise NotFoundError("Invite not found")
            now = utcnow()
            invite = self.resolve(invite, now)
            status = effective_status(invite, now)

            group = self.get_groups([invite["group_id"]]).get(invite["group_id"])
            if group is None:
                raise NotFoundError("Invite not found")
            profiles = self.users.get_profiles([invite["inviter_id"]])

            return InvitePreview(
                id=invite["id"],
                invitee_email=invite.get("invitee_email"),
                status=status,
                is_valid=status is InviteStatus.PENDING,
                group=GroupRef(
                    id=group["id"],
                    name=group["name"],
                    member_count=self.count_members(group["id"]),
                ),
                inviter=self._user_ref(profiles.get(invite["inviter_id"])),
                expires_at=invite["expires_at"],
                created_at=invite["created_at"],
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get invite error: {e}")
            raise ServerError("Failed to get invite")

    def respond_by_token(self, token: str, user: Dict[str, Any], accept: bool) -> InviteResult:
        invite = self.get_invite_by_token(token)
        if invite is None:
            raise NotFoundError("Invite not found")
        return self.respond(invite, user, accept)

    def respond_by_id(self, invite_id: str, user: Dict[str, Any], accept: bool) -> InviteResult:
        invite = self.get_invite_by_id(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found")
        return self.respond(invite, user, accept)

    def respond(self, invite: Dict[str, Any], user: Dict[str, Any], accept: bool) -> InviteResult:
        """Accept or decline an invite on behalf of its addressee"""
        try:
            now = utcnow()
            invite = self.resolve(invite, now)
            check_can_respond(invite, user["id"], user.get("email"), now)

            group = self.get_groups([invite["group_id"]]).get(invite["group_id"])
            group_ref = GroupRef(id=group["id"], name=group["name"]) if group else None

            if not accept:
                result = self.supabase.table("group_invites")\
                    .update({"status": InviteStatus.DECLINED.value})\
                    .eq("id", invite["id"])\
                    .eq("status", InviteStatus.PENDING.value)\
                    .execute()
                if not result.data:
                    raise ValidationFailedError("This invite has already been used")
                logger.info(f"Invite {invite['id']} declined by {user['id']}")
                return InviteResult(message="Invite declined")

            if self.is_member(invite["group_id"], user["id"]):
                raise ValidationFailedError("You are already a member of this group")

            try:
                self.supabase.rpc("accept_group_invite", {
                    "p_invite_id": invite["id"],
                    "p_user_id": user["id"],
                }).execute()
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise ValidationFailedError("You are already a member of this group")
                raise ValidationFailedError("This invite is no longer valid")

            logger.info(f"Invite {invite['id']} accepted by {user['id']}")
            return InviteResult(message="Invite accepted", group=group_ref)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Respond to invite error: {e}")
            raise ServerError("Failed to respond to invite")

    # ---- invitee inbox -----------------------------------------------------

    def list_user_invites(self, user_id: str) -> UserInviteListResponse:
        """Pending in-app invites addressed to the user and how many are unseen"""
        try:
            result = self.supabase.table("group_invites")\
                .select("*")\
                .eq("invitee_id", user_id)\
                .eq("status", InviteStatus.PENDING.value)\
                .order("created_at", desc=True)\
                .execute()
            invites = [
                i for i in self.expire_lapsed(result.data or [])
                if i["status"] == InviteStatus.PENDING.value
            ]
            items = self._user_invites(invites)
            unseen = sum(1 for i in invites if not i.get("seen_at"))
            return UserInviteListResponse(invites=items, unseen_count=unseen)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get user invites error: {e}")
            raise ServerError("Failed to get invites")

    def list_invite_history(self, user_id: str) -> List[UserInvite]:
        """Most recent answered or expired in-app invites of the user"""
        try:
            pending = self.supabase.table("group_invites")\
                .select("*")\
                .eq("invitee_id", user_id)\
                .eq("status", InviteStatus.PENDING.value)\
                .execute()
            self.expire_lapsed(pending.data or [])

            result = self.supabase.table("group_invites")\
                .select("*")\
                .eq("invitee_id", user_id)\
                .in_("status", sorted(s.value for s in TERMINAL_STATUSES))\
                .order("created_at", desc=True)\
                .limit(HISTORY_LIMIT)\
                .execute()
            return self._user_invites(result.data or [])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get invite history error: {e}")
            raise ServerError("Failed to get invite history")

    def mark_seen(self, user_id: str) -> int:
        """Stamp seen_at on all unseen pending invites of the user"""
        try:
            result = self.supabase.table("group_invites")\
                .update({"seen_at": utcnow().isoformat()})\
                .eq("invitee_id", user_id)\
                .eq("status", InviteStatus.PENDING.value)\
                .is_("seen_at", "null")\
                .execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Mark invites seen error: {e}")
            raise ServerError("Failed to mark invites as seen")

    # ---- public join link --------------------------------------------------

    def get_public_invite(self, group_id: str) -> PublicInviteResponse:
        result = self.supabase.table("groups")\
            .select("id, public_invite_token")\
            .eq("id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFoundError("Group not found")
        token = result.data[0].get("public_invite_token")
        return PublicInviteResponse(enabled=bool(token), invite_link=join_link(token) if token else None)

    def regenerate_public_invite(self, group_id: str) -> PublicInviteResponse:
        """Issue a new public join token; the previous one stops working"""
        try:
            token = generate_invite_token()
            result = self.supabase.table("groups")\
                .update({"public_invite_token": token})\
                .eq("id", group_id)\
                .execute()
            if not result.data:
                raise NotFoundError("Group not found")
            logger.info(f"Public invite link regenerated for group {group_id}")
            return PublicInviteResponse(enabled=True, invite_link=join_link(token))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Generate public invite error: {e}")
            raise ServerError("Failed to generate public invite")

    def disable_public_invite(self, group_id: str) -> PublicInviteResponse:
        try:
            result = self.supabase.table("groups")\
                .update({"public_invite_token": None})\
                .eq("id", group_id)\
                .execute()
            if not result.data:
                raise NotFoundError("Group not found")
            logger.info(f"Public invite link disabled for group {group_id}")
            return PublicInviteResponse(enabled=False, invite_link=None)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Disable public invite error: {e}")
            raise ServerError("Failed to disable public invite")

    def get_group_by_public_token(self, token: str) -> Dict[str, Any]:
        result = self.supabase.table("groups")\
            .select("id, name")\
            .eq("public_invite_token", token)\
            .limit(1)\
            .execute()
        if not token or not result.data:
            raise NotFoundError("Invalid invite link")
        return result.data[0]

    def preview_public_invite(self, token: str) -> GroupRef:
        group = self.get_group_by_public_token(token)
        return GroupRef(id=group["id"], name=group["name"], member_count=self.count_members(group["id"]))

    def join_with_public_token(self, token: str, user_id: str) -> InviteResult:
        """Join as MEMBER through a group's public link; no invite row is involved"""
        try:
            group = self.get_group_by_public_token(token)
            if self.is_member(group["id"], user_id):
                raise ValidationFailedError("You are already a member of this group")
            try:
                self.supabase.table("group_members").insert({
                    "group_id": group["id"],
                    "user_id": user_id,
                    "role": GroupRole.MEMBER.value,
                }).execute()
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise ValidationFailedError("You are already a member of this group")
                raise
            logger.info(f"User {user_id} joined group {group['id']} via public link")
            return InviteResult(
                message="Successfully joined the group",
                group=GroupRef(id=group["id"], name=group["name"]),
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Join group error: {e}")
            raise ServerError("Failed to join group")

    # ---- formatting --------------------------------------------------------

    @staticmethod
    def _user_ref(profile: Optional[Dict[str, Any]]) -> Optional[UserRef]:
        if not profile:
            return None
        return UserRef(id=profile["id"], name=profile.get("name"), email=profile.get("email"))

    def _invite_response(self, invite: Dict[str, Any], profiles: Dict[str, Dict[str, Any]]) -> InviteResponse:
        invitee = profiles.get(invite.get("invitee_id")) if invite.get("invitee_id") else None
        return InviteResponse(
            id=invite["id"],
            invitee_email=invite.get("invitee_email"),
            invitee_id=invite.get("invitee_id"),
            invitee_name=invitee.get("name") if invitee else None,
            inviter=self._user_ref(profiles.get(invite["inviter_id"])),
            status=invite["status"],
            token=invite["token"],
            expires_at=invite["expires_at"],
            created_at=invite["created_at"],
        )

    def _user_invites(self, invites: List[Dict[str, Any]]) -> List[UserInvite]:
        groups = self.get_groups(i["group_id"] for i in invites)
        profiles = self.users.get_profiles(i["inviter_id"] for i in invites)
        items = []
        for invite in invites:
            group = groups.get(invite["group_id"])
            if group is None:
                continue
            items.append(UserInvite(
                id=invite["id"],
                group=GroupRef(id=group["id"], name=group["name"]),
                inviter=self._user_ref(profiles.get(invite["inviter_id"])),
                status=invite["status"],
                seen_at=invite.get("seen_at"),
                expires_at=invite["expires_at"],
                created_at=invite["created_at"],
            ))
        return items
