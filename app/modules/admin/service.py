import hmac
import math
from supabase import Client
from app.config import settings
from app.core.exceptions import NotFoundError, ServerError
from app.modules.admin.schemas import (
    AdminStats, RecentActivity, TopGroup, Pagination, AdminUserItem, AdminUserList,
    AdminGroupItem, AdminGroupList
)
from app.modules.groups.service import delete_group_cascade
from app.modules.users.service import clean_search_term
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

TOP_GROUPS_LIMIT = 5


def ct_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def verify_admin_credentials(username: str, password: str) -> bool:
    """Constant-time check against the configured back-office account"""
    if not settings.admin_password:
        logger.error("ADMIN_PASSWORD is not set; admin login is disabled")
        return False
    user_ok = ct_equal(username.strip(), settings.admin_username)
    password_ok = ct_equal(password, settings.admin_password)
    return user_ok and password_ok


def page_bounds(page: int, limit: int) -> tuple:
    offset = (page - 1) * limit
    return offset, offset + limit - 1


def pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)


class AdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _count(self, table: str, since: Optional[datetime] = None) -> int:
        query = self.supabase.table(table).select("id", count="exact")
        if since is not None:
            query = query.gte("created_at", since.isoformat())
        result = query.execute()
        return result.count if result.count is not None else len(result.data or [])

    def _count_by(self, table: str, column: str, values: List[str]) -> Counter:
        if not values:
            return Counter()
        result = self.supabase.table(table)\
            .select(column)\
            .in_(column, values)\
            .execute()
        return Counter(row[column] for row in (result.data or []))

    def get_stats(self) -> AdminStats:
        """Totals, 7/30-day activity and the five groups with the most games"""
        try:
            now = datetime.now(timezone.utc)
            week_ago = now - timedelta(days=7)
            month_ago = now - timedelta(days=30)

            games = self.supabase.table("games").select("group_id").execute()
            games_per_group = Counter(g["group_id"] for g in (games.data or []))
            top_ids = [gid for gid, _ in games_per_group.most_common(TOP_GROUPS_LIMIT)]
            top_groups: List[TopGroup] = []
            if top_ids:
                groups = self.supabase.table("groups")\
                    .select("id, name")\
                    .in_("id", top_ids)\
                    .execute()
                names = {g["id"]: g["name"] for g in (groups.data or [])}
                members = self._count_by("group_members", "group_id", top_ids)
                top_groups = [
                    TopGroup(id=gid, name=names[gid], member_count=members[gid], game_count=games_per_group[gid])
                    for gid in top_ids if gid in names
                ]

            return AdminStats(
                total_users=self._count("user_profiles"),
                total_groups=self._count("groups"),
                total_games=self._count("games"),
                total_participants=self._count("game_participants"),
                recent_activity=RecentActivity(
                    users_last_7_days=self._count("user_profiles", week_ago),
                    users_last_30_days=self._count("user_profiles", month_ago),
                    games_last_7_days=self._count("games", week_ago),
                    games_last_30_days=self._count("games", month_ago),
                ),
                top_groups=top_groups,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Admin stats error: {e}")
            raise ServerError("Failed to fetch statistics")

    def list_users(self, page: int, limit: int, search: Optional[str] = None) -> AdminUserList:
        try:
            start, end = page_bounds(page, limit)
            query = self.supabase.table("user_profiles").select("*", count="exact")
            term = clean_search_term(search)
            if term:
                query = query.or_(f"name.ilike.%{term}%,email.ilike.%{term}%")
            result = query.order("created_at", desc=True).range(start, end).execute()

            rows = result.data or []
            ids = [u["id"] for u in rows]
            group_counts = self._count_by("group_members", "user_id", ids)
            game_counts = self._count_by("game_participants", "user_id", ids)
            users = [
                AdminUserItem(
                    id=u["id"],
                    name=u.get("name"),
                    email=u["email"],
                    created_at=u.get("created_at"),
                    group_count=group_counts[u["id"]],
                    game_count=game_counts[u["id"]],
                )
                for u in rows
            ]
            total = result.count if result.count is not None else len(rows)
            return AdminUserList(users=users, pagination=pagination(page, limit, total))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Admin users list error: {e}")
            raise ServerError("Failed to fetch users")

    def list_groups(self, page: int, limit: int, search: Optional[str] = None) -> AdminGroupList:
        try:
            start, end = page_bounds(page, limit)
            query = self.supabase.table("groups").select("*", count="exact")
            term = clean_search_term(search)
            if term:
                query = query.ilike("name", f"%{term}%")
            result = query.order("created_at", desc=True).range(start, end).execute()

            rows = result.data or []
            ids = [g["id"] for g in rows]
            member_counts = self._count_by("group_members", "group_id", ids)
            game_counts = self._count_by("games", "group_id", ids)
            groups = [
                AdminGroupItem(
                    id=g["id"],
                    name=g["name"],
                    created_at=g.get("created_at"),
                    member_count=member_counts[g["id"]],
                    game_count=game_counts[g["id"]],
                )
                for g in rows
            ]
            total = result.count if result.count is not None else len(rows)
            return AdminGroupList(groups=groups, pagination=pagination(page, limit, total))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Admin groups list error: {e}")
            raise ServerError("Failed to fetch groups")

    def delete_user(self, user_id: str) -> bool:
        """Remove an account.

        Groups the user owns are deleted with everything in them. Their rows in
        other groups' games become guest rows under their name, so those
        groups' totals do not change.
        """
        try:
            result = self.supabase.rpc("delete_user_account", {"p_user_id": user_id}).execute()
            if not result.data:
                raise NotFoundError("User not found")

            # Auth account goes last, once its data is gone
            self.supabase.auth.admin.delete_user(user_id)
            logger.info(f"Admin deleted user {user_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Admin delete user error: {e}")
            raise ServerError("Failed to delete user")

    def delete_group(self, group_id: str) -> bool:
        try:
            if not delete_group_cascade(self.supabase, group_id):
                raise NotFoundError("Group not found")
            logger.info(f"Admin deleted group {group_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Admin delete group error: {e}")
            raise ServerError("Failed to delete group")