from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.games.schemas import GameCreate, GameUpdate, GameEnvelope, GameListResponse, GameType
from app.modules.games.service import GameService
from app.core.dependencies import check_group_member
from app.core.ids import PathId
from app.core.responses import ApiResponse, MessageData, ok, message
from supabase import Client
from typing import Dict, Optional
from datetime import datetime

router = APIRouter(prefix="/groups/{group_id}/games", tags=["games"])


def get_game_service(supabase: Client = Depends(get_supabase)) -> GameService:
    return GameService(supabase)


@router.get("", response_model=ApiResponse[GameListResponse])
async def list_games(
    group_id: PathId,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    game_type: Optional[GameType] = Query(None, alias="gameType"),
    membership: Dict = Depends(check_group_member),
    service: GameService = Depends(get_game_service)
):
    """List games of a group, newest first"""
    games = service.list_games(group_id, start_date, end_date, game_type)
    return ok(GameListResponse(games=games))


@router.post("", response_model=ApiResponse[GameEnvelope], status_code=201)
async def create_game(
    group_id: PathId,
    game_data: GameCreate,
    membership: Dict = Depends(check_group_member),
    service: GameService = Depends(get_game_service)
):
    """Record a game (members)"""
    return ok(GameEnvelope(game=service.create_game(group_id, game_data)))


@router.get("/{game_id}", response_model=ApiResponse[GameEnvelope])
async def get_game(
    group_id: PathId,
    game_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: GameService = Depends(get_game_service)
):
    return ok(GameEnvelope(game=service.get_game(group_id, game_id)))


@router.put("/{game_id}", response_model=ApiResponse[GameEnvelope])
async def update_game(
    group_id: PathId,
    game_id: PathId,
    game_data: GameUpdate,
    membership: Dict = Depends(check_group_member),
    service: GameService = Depends(get_game_service)
):
    """Replace a game and its participants (members)"""
    return ok(GameEnvelope(game=service.update_game(group_id, game_id, game_data)))


@router.delete("/{game_id}", response_model=ApiResponse[MessageData])
async def delete_game(
    group_id: PathId,
    game_id: PathId,
    membership: Dict = Depends(check_group_member),
    service: GameService = Depends(get_game_service)
):
    service.delete_game(group_id, game_id)
    return message("Game deleted successfully")
