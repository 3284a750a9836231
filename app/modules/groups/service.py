from supabase import Client
from app.core.exceptions import NotFoundError, ServerError, ValidationFailedError
from app.modules.groups.policy import (
    GroupRole, ROLE_RANK, can_change_roles, can_manage_members, can_update_group,
    check_member_removal, check_role_change
)
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupSummary, GroupDetailResponse,
    GroupMemberResponse, GroupPermissions
)
from app.modules.users.service import UserService
from typing import Any, Dict, List, Optional
from collections import Counter
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def first_row(data: Any) -> Optional[Dict[str, Any]]:
    """RPC results arrive as a row or a list of rows depending on the function's return type"""
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


def delete_group_cascade(supabase: Client, group_id: str) -> bool:
    """Delete a group and everything that hangs off it in one transaction; False when it does not exist"""
    result = supabase.rpc("delete_group", {"p_group_id": group_id}).execute()
    return bool(result.data)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    def get_group_row(self, group_id: str) -> Dict[str, Any]:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFoundError("Group not found")
        return result.data[0]

    def count_by_group(self, table: str, group_ids: List[str]) -> Counter:
        if not group_ids:
            return Counter()
        result = self.supabase.table(table)\
            .select("group_id")\
            .in_("group_id", group_ids)\
            .execute()
        return Counter(row["group_id"] for row in (result.data or []))

    def create_group(self, group_data: GroupCreate, user_id: str) -> GroupResponse:
        """Create a group; the creator becomes its OWNER in the same transaction"""
        try:
            result = self.supabase.rpc("create_group_with_owner", {
                "p_name": group_data.name.strip(),
                "p_user_id": user_id,
            }).execute()

            group = first_row(result.data)
            if group is None:
                raise ServerError("Failed to create group")

            logger.info(f"Group {group['id']} created by {user_id}")
            return GroupResponse(**group, role=GroupRole.OWNER)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Create group error: {e}")
            raise ServerError("Failed to create group")

    def list_user_groups(self, user_id: str) -> List[GroupSummary]:
        """Groups the user belongs to, with their role and member/game counts"""
        try:
            memberships = self.supabase.table("group_members")\
                .select("*")\
                .eq("user_id", user_id)\
                .execute()
            if not memberships.data:
                return []

            group_ids = [m["group_id"] for m in memberships.data]
            groups_result = self.supabase.table("groups")\
                .select("*")\
                .in_("id", group_ids)\
                .execute()
            groups = {g["id"]: g for g in (groups_result.data or [])}

            member_counts = self.count_by_group("group_members", group_ids)
            game_counts = self.count_by_group("games", group_ids)

            summaries = []
            for membership in memberships.data:
                group = groups.get(membership["group_id"])
                if group is None:
                    continue
                summaries.append(GroupSummary(
                    id=group["id"],
                    name=group["name"],
                    role=membership["role"],
                    member_count=member_counts[group["id"]],
                    game_count=game_counts[group["id"]],
                    created_at=group["created_at"],
                    joined_at=membership.get("created_at"),
                ))
            return summaries
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"List groups error: {e}")
            raise ServerError("Failed to get groups")

    def get_group_detail(self, group_id: str, membership: Dict[str, Any]) -> GroupDetailResponse:
        """Group with its members, game count and the caller's role"""
        try:
            group = self.get_group_row(group_id)
            role = GroupRole(membership["role"])
            return GroupDetailResponse(
                id=group["id"],
                name=group["name"],
                created_at=group["created_at"],
                game_count=self.count_by_group("games", [group_id])[group_id],
                current_user_role=role,
                permissions=GroupPermissions(
                    can_manage_members=can_manage_members(role),
                    can_change_roles=can_change_roles(role),
                    can_update_group=can_update_group(role),
                ),
                members=self.list_members(group_id),
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get group error: {e}")
            raise ServerError("Failed to get group")

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Rename a group"""
        try:
            result = self.supabase.table("groups")\
                .update({
                    "name": group_data.name.strip(),
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise NotFoundError("Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Update group error: {e}")
            raise ServerError("Failed to update group")

    def delete_group(self, group_id: str) -> bool:
        """Delete group with its members, invites and games"""
        try:
            deleted = delete_group_cascade(self.supabase, group_id)
            if not deleted:
                raise NotFoundError("Group not found")
            logger.info(f"Group {group_id} deleted")
            return deleted
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Delete group error: {e}")
            raise ServerError("Failed to delete group")

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """Members ordered owner, admins, members, then by join date"""
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at")\
                .execute()
            rows = result.data or []
            profiles = self.users.get_profiles(m["user_id"] for m in rows)

            rows = sorted(rows, key=lambda m: ROLE_RANK[GroupRole(m["role"])])
            return [self._member_response(m, profiles.get(m["user_id"])) for m in rows]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"List members error: {e}")
            raise ServerError("Failed to get members")

    def get_member_row(self, group_id: str, membership_id: str) -> Dict[str, Any]:
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("id", membership_id)\
            .limit(1)\
            .execute()
        # A membership from another group is reported exactly like a missing one
        if not result.data or result.data[0]["group_id"] != group_id:
            raise NotFoundError("Member not found")
        return result.data[0]

    def update_member_role(
        self,
        group_id: str,
        membership_id: str,
        actor_membership: Dict[str, Any],
        new_role: GroupRole,
    ) -> GroupMemberResponse:
        """Move a member between ADMIN and MEMBER (owner only)"""
        try:
            target = self.get_member_row(group_id, membership_id)
            check_role_change(GroupRole(actor_membership["role"]), GroupRole(target["role"]), new_role)

            result = self.supabase.table("group_members")\
                .update({"role": new_role.value})\
                .eq("id", membership_id)\
                .neq("role", GroupRole.OWNER.value)\
                .execute()
            if not result.data:
                raise ValidationFailedError("Cannot change the role of the group owner")

            profiles = self.users.get_profiles([target["user_id"]])
            logger.info(f"Member {membership_id} of group {group_id} is now {new_role.value}")
            return self._member_response(result.data[0], profiles.get(target["user_id"]))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Update member role error: {e}")
            raise ServerError("Failed to update member role")

    def remove_member(self, group_id: str, membership_id: str, actor_membership: Dict[str, Any]) -> bool:
        """Remove a member or leave the group, following the removal rules in policy.py"""
        try:
            target = self.get_member_row(group_id, membership_id)
            check_member_removal(
                GroupRole(actor_membership["role"]),
                GroupRole(target["role"]),
                is_self=target["user_id"] == actor_membership["user_id"],
            )

            result = self.supabase.table("group_members")\
                .delete()\
                .eq("id", membership_id)\
                .neq("role", GroupRole.OWNER.value)\
                .execute()
            if not result.data:
                raise ValidationFailedError("Cannot remove the group owner")

            logger.info(f"Member {membership_id} removed from group {group_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Remove member error: {e}")
            raise ServerError("Failed to remove member")

    @staticmethod
    def _member_response(row: Dict[str, Any], profile: Optional[Dict[str, Any]]) -> GroupMemberResponse:
        return GroupMemberResponse(
            id=row["id"],
            user_id=row["user_id"],
            email=profile.get("email") if profile else None,
            name=profile.get("name") if profile else None,
            role=row["role"],
            joined_at=row["created_at"],
        )
