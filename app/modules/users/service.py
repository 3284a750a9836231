from supabase import Client
from app.core.exceptions import NotFoundError, ServerError
from app.modules.users.schemas import UserResponse, UserSearchResult
from app.modules.invites.lifecycle import InviteStatus, utcnow
from typing import Dict, Iterable, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10

# Characters with meaning inside a PostgREST or_() filter string
_FILTER_RESERVED = str.maketrans("", "", ",()%*\\")


def clean_search_term(term: Optional[str]) -> str:
    return (term or "").strip().translate(_FILTER_RESERVED)


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise NotFoundError("User not found")

        return UserResponse(**result.data[0])

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        """Profile row for an email (case-insensitive), or None"""
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("email", email.strip().lower())\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Dict]:
        """Profile rows keyed by user id; unknown ids are simply absent"""
        ids = list({uid for uid in user_ids if uid})
        if not ids:
            return {}
        result = self.supabase.table("user_profiles")\
            .select("id, email, name, created_at")\
            .in_("id", ids)\
            .execute()
        return {row["id"]: row for row in (result.data or [])}

    def search_users(self, current_user_id: str, query: str, group_id: Optional[str] = None) -> List[UserSearchResult]:
        """Users matching name or email, excluding the caller and, for a group,
        its members and anyone with a pending in-app invite to it."""
        query = clean_search_term(query)
        if len(query) < SEARCH_MIN_LENGTH:
            return []
        try:
            exclude_ids = {current_user_id}
            if group_id:
                members = self.supabase.table("group_members")\
                    .select("user_id")\
                    .eq("group_id", group_id)\
                    .execute()
                exclude_ids.update(m["user_id"] for m in (members.data or []))

                pending = self.supabase.table("group_invites")\
                    .select("invitee_id")\
                    .eq("group_id", group_id)\
                    .eq("status", InviteStatus.PENDING.value)\
                    .gt("expires_at", utcnow().isoformat())\
                    .not_.is_("invitee_id", "null")\
                    .execute()
                exclude_ids.update(i["invitee_id"] for i in (pending.data or []) if i.get("invitee_id"))

            result = self.supabase.table("user_profiles")\
                .select("id, name, email")\
                .or_(f"name.ilike.%{query}%,email.ilike.%{query}%")\
                .not_.in_("id", sorted(exclude_ids))\
                .order("name")\
                .limit(SEARCH_LIMIT)\
                .execute()
            return [UserSearchResult(**row) for row in (result.data or [])]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"User search failed: {e}")
            raise ServerError("Failed to search users")
