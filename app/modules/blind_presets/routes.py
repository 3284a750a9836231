from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.blind_presets.schemas import PresetCreate, PresetEnvelope, PresetListResponse, DefaultLevelsResponse
from app.modules.blind_presets.service import BlindPresetService, default_levels
from app.core.dependencies import get_current_user
from app.core.ids import PathId
from app.core.responses import ApiResponse, MessageData, ok, message
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/blind-presets", tags=["blind-presets"])


def get_preset_service(supabase: Client = Depends(get_supabase)) -> BlindPresetService:
    return BlindPresetService(supabase)


@router.get("", response_model=ApiResponse[PresetListResponse])
async def list_presets(
    user_data: Dict = Depends(get_current_user),
    service: BlindPresetService = Depends(get_preset_service)
):
    return ok(PresetListResponse(presets=service.list_presets(user_data["id"])))


@router.get("/defaults", response_model=ApiResponse[DefaultLevelsResponse])
async def get_default_levels():
    """Built-in ten-level schedule"""
    return ok(DefaultLevelsResponse(levels=default_levels()))


@router.post("", response_model=ApiResponse[PresetEnvelope], status_code=201)
async def create_preset(
    preset_data: PresetCreate,
    user_data: Dict = Depends(get_current_user),
    service: BlindPresetService = Depends(get_preset_service)
):
    """Save a named level list for the current user"""
    return ok(PresetEnvelope(preset=service.create_preset(user_data["id"], preset_data)))


@router.delete("/{preset_id}", response_model=ApiResponse[MessageData])
async def delete_preset(
    preset_id: PathId,
    user_data: Dict = Depends(get_current_user),
    service: BlindPresetService = Depends(get_preset_service)
):
    """Delete one of the current user's presets"""
    service.delete_preset(user_data["id"], preset_id)
    return message("Preset deleted")
