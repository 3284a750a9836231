from supabase import Client
from app.core.exceptions import NotFoundError, ServerError
from app.core.money import calculate_net, format_money, to_storage
from app.modules.games.ledger import game_totals, validate_participants
from app.modules.games.schemas import GameCreate, GameUpdate, GameResponse, GameType, ParticipantResponse
from app.modules.groups.service import first_row
from app.modules.users.service import UserService
from typing import Any, Dict, Iterable, List, Optional, Set
from collections import defaultdict
from datetime import datetime
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def load_participants(supabase: Client, game_ids: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
    """Participant rows grouped by game id"""
    ids = list(game_ids)
    grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    if not ids:
        return grouped
    result = supabase.table("game_participants")\
        .select("*")\
        .in_("game_id", ids)\
        .execute()
    for row in result.data or []:
        grouped[row["game_id"]].append(row)
    return grouped


def fetch_games(
    supabase: Client,
    group_ids: List[str],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    game_type: Optional[GameType] = None,
) -> List[Dict[str, Any]]:
    """Games of the given groups, newest first, each with its ``participants`` attached"""
    if not group_ids:
        return []
    query = supabase.table("games")\
        .select("*")\
        .in_("group_id", group_ids)
    if start_date:
        query = query.gte("date", start_date.isoformat())
    if end_date:
        query = query.lte("date", end_date.isoformat())
    if game_type:
        query = query.eq("game_type", game_type.value)
    result = query.order("date", desc=True).execute()

    games = result.data or []
    participants = load_participants(supabase, [g["id"] for g in games])
    return [{**g, "participants": participants.get(g["id"], [])} for g in games]


class GameService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)

    def get_game_row(self, group_id: str, game_id: str) -> Dict[str, Any]:
        result = self.supabase.table("games")\
            .select("*")\
            .eq("id", game_id)\
            .limit(1)\
            .execute()
        # A game of another group is reported exactly like a missing one
        if not result.data or result.data[0]["group_id"] != group_id:
            raise NotFoundError("Game not found")
        return result.data[0]

    def member_ids(self, group_id: str, user_ids: Iterable[str]) -> Set[str]:
        ids = list({uid for uid in user_ids if uid})
        if not ids:
            return set()
        result = self.supabase.table("group_members")\
            .select("user_id")\
            .eq("group_id", group_id)\
            .in_("user_id", ids)\
            .execute()
        return {row["user_id"] for row in (result.data or [])}

    def list_games(
        self,
        group_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        game_type: Optional[GameType] = None,
    ) -> List[GameResponse]:
        """Games of a group, newest first, optionally bounded by date and type"""
        try:
            games = fetch_games(self.supabase, [group_id], start_date, end_date, game_type)
            profiles = self.users.get_profiles(
                p.get("user_id") for g in games for p in g["participants"]
            )
            return [self._game_response(g, g["participants"], profiles) for g in games]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get games error: {e}")
            raise ServerError("Failed to get games")

    def get_game(self, group_id: str, game_id: str) -> GameResponse:
        try:
            game = self.get_game_row(group_id, game_id)
            participants = load_participants(self.supabase, [game_id]).get(game_id, [])
            group = self.supabase.table("groups")\
                .select("id, name")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()
            profiles = self.users.get_profiles(p.get("user_id") for p in participants)
            response = self._game_response(game, participants, profiles)
            response.group_name = group.data[0]["name"] if group.data else None
            return response
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Get game error: {e}")
            raise ServerError("Failed to get game")

    def create_game(self, group_id: str, game_data: GameCreate) -> GameResponse:
        """Record a game with its full participant set"""
        try:
            game = self._save(group_id, None, game_data)
            logger.info(f"Game {game.id} created in group {group_id}")
            return game
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Create game error: {e}")
            raise ServerError("Failed to create game")

    def update_game(self, group_id: str, game_id: str, game_data: GameUpdate) -> GameResponse:
        """Replace a game's fields and its whole participant set"""
        try:
            self.get_game_row(group_id, game_id)
            game = self._save(group_id, game_id, game_data)
            logger.info(f"Game {game_id} updated in group {group_id}")
            return game
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Update game error: {e}")
            raise ServerError("Failed to update game")

    def delete_game(self, group_id: str, game_id: str) -> bool:
        try:
            self.get_game_row(group_id, game_id)
            self.supabase.table("game_participants")\
                .delete()\
                .eq("game_id", game_id)\
                .execute()
            self.supabase.table("games")\
                .delete()\
                .eq("id", game_id)\
                .execute()
            logger.info(f"Game {game_id} deleted from group {group_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Delete game error: {e}")
            raise ServerError("Failed to delete game")

    def _save(self, group_id: str, game_id: Optional[str], game_data: GameCreate) -> GameResponse:
        participants = [p.model_dump() for p in game_data.participants]
        validate_participants(participants, self.member_ids(group_id, (p["user_id"] for p in participants)))

        result = self.supabase.rpc("save_game", {
            "p_game_id": game_id,
            "p_group_id": group_id,
            "p_date": game_data.date.isoformat(),
            "p_game_type": game_data.game_type.value,
            "p_notes": game_data.notes,
            "p_participants": [
                {
                    "user_id": p["user_id"].strip() if p["user_id"] and p["user_id"].strip() else None,
                    "guest_name": p["guest_name"].strip() if p["guest_name"] and p["guest_name"].strip() else None,
                    "spent": to_storage(p["spent"]),
                    "won": to_storage(p["won"]),
                }
                for p in participants
            ],
        }).execute()

        game = first_row(result.data)
        if game is None:
            raise ServerError("Failed to save game")

        rows = load_participants(self.supabase, [game["id"]]).get(game["id"], [])
        profiles = self.users.get_profiles(p.get("user_id") for p in rows)
        return self._game_response(game, rows, profiles)

    @staticmethod
    def _game_response(
        game: Dict[str, Any],
        participants: List[Dict[str, Any]],
        profiles: Dict[str, Dict[str, Any]],
    ) -> GameResponse:
        total_spent, total_won = game_totals(participants)
        items = []
        for p in participants:
            profile = profiles.get(p.get("user_id")) if p.get("user_id") else None
            items.append(ParticipantResponse(
                id=p["id"],
                user_id=p.get("user_id"),
                user_name=profile.get("name") if profile else None,
                user_email=profile.get("email") if profile else None,
                guest_name=p.get("guest_name"),
                spent=format_money(p["spent"]),
                won=format_money(p["won"]),
                net=format_money(calculate_net(p["won"], p["spent"])),
            ))
        return GameResponse(
            id=game["id"],
            group_id=game["group_id"],
            date=game["date"],
            game_type=game["game_type"],
            notes=game.get("notes"),
            participant_count=len(participants),
            total_spent=format_money(total_spent),
            total_won=format_money(total_won),
            participants=items,
            created_at=game["created_at"],
            updated_at=game.get("updated_at"),
        )
