from supabase import Client
from app.core.exceptions import ServerError
from app.core.money import ZERO, calculate_net, format_money, to_decimal
from app.modules.dashboard.schemas import (
    Period, UserSummary, GroupBreakdownItem, UserRecentGame, UserDashboard,
    GroupSummaryStats, PlayerStat, GroupRecentGame, GroupDashboard
)
from app.modules.games.ledger import game_totals, group_breakdown, player_standings, summarize, user_participation
from app.modules.games.service import fetch_games
from app.modules.users.service import UserService
from typing import Optional
from datetime import datetime
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

RECENT_GAMES_LIMIT = 10


class DashboardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    def user_dashboard(
        self,
        user_id: str,
        group_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UserDashboard:
        """The user's own results across their groups, or one of them when ``group_id`` is given"""
        try:
            period = Period(start_date=start_date, end_date=end_date)
            memberships = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = [m["group_id"] for m in (memberships.data or [])]

            # A groupId the user does not belong to yields an empty scope, not an error
            scope = group_ids
            if group_id:
                scope = [group_id] if group_id in group_ids else []

            groups = {}
            if group_ids:
                groups_result = self.supabase.table("groups")\
                    .select("id, name")\
                    .in_("id", group_ids)\
                    .execute()
                groups = {g["id"]: g for g in (groups_result.data or [])}

            games = [
                g for g in fetch_games(self.supabase, scope, start_date, end_date)
                if user_participation(g, user_id) is not None
            ]

            total_spent = ZERO
            total_won = ZERO
            for game in games:
                participation = user_participation(game, user_id)
                total_spent += to_decimal(participation["spent"])
                total_won += to_decimal(participation["won"])

            breakdown = [
                GroupBreakdownItem(
                    id=t.key,
                    name=t.name,
                    games_played=t.games_played,
                    total_spent=format_money(t.total_spent),
                    total_won=format_money(t.total_won),
                    net_result=format_money(t.net),
                )
                for t in group_breakdown(games, user_id, groups)
            ]

            recent = []
            for game in games[:RECENT_GAMES_LIMIT]:
                participation = user_participation(game, user_id)
                recent.append(UserRecentGame(
                    id=game["id"],
                    group_id=game["group_id"],
                    group_name=(groups.get(game["group_id"]) or {}).get("name"),
                    date=game["date"],
                    game_type=game["game_type"],
                    spent=format_money(participation["spent"]),
                    won=format_money(participation["won"]),
                    net=format_money(calculate_net(participation["won"], participation["spent"])),
                ))

            return UserDashboard(
                period=period,
                summary=UserSummary(
                    # Every group the user belongs to, whatever the groupId scope
                    total_groups=len(group_ids),
                    total_games_played=len(games),
                    total_spent=format_money(total_spent),
                    total_won=format_money(total_won),
                    overall_net_result=format_money(total_won - total_spent),
                ),
                group_breakdown=breakdown,
                recent_games=recent,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get overall dashboard error: {e}")
            raise ServerError("Failed to get dashboard")

    def group_dashboard(
        self,
        group_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> GroupDashboard:
        """Totals and player standings over every participant of one group"""
        try:
            games = fetch_games(self.supabase, [group_id], start_date, end_date)
            profiles = self.users.get_profiles(
                p.get("user_id") for g in games for p in g["participants"]
            )
            summary = summarize(games)

            player_stats = [
                PlayerStat(
                    type="guest" if t.is_guest else "user",
                    id=t.user_id,
                    name=t.name,
                    email=t.email,
                    games_played=t.games_played,
                    total_spent=format_money(t.total_spent),
                    total_won=format_money(t.total_won),
                    net_result=format_money(t.net),
                )
                for t in player_standings(games, profiles)
            ]

            recent = []
            for game in games[:RECENT_GAMES_LIMIT]:
                spent, won = game_totals(game["participants"])
                recent.append(GroupRecentGame(
                    id=game["id"],
                    date=game["date"],
                    game_type=game["game_type"],
                    participant_count=len(game["participants"]),
                    total_spent=format_money(spent),
                    total_won=format_money(won),
                ))

            return GroupDashboard(
                period=Period(start_date=start_date, end_date=end_date),
                summary=GroupSummaryStats(
                    total_games=summary.total_games,
                    cash_games=summary.cash_games,
                    tournaments=summary.tournaments,
                    total_spent=format_money(summary.total_spent),
                    total_won=format_money(summary.total_won),
                    group_net_result=format_money(summary.net),
                ),
                player_stats=player_stats,
                recent_games=recent,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get group dashboard error: {e}")
            raise ServerError("Failed to get dashboard")
