from supabase import Client
from app.core.exceptions import ForbiddenError, NotFoundError, ServerError
from app.modules.blind_presets.schemas import PresetCreate, PresetResponse, BlindLevelSchema
from app.modules.blind_timer.timer import DEFAULT_LEVELS
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def default_levels() -> List[BlindLevelSchema]:
    return [BlindLevelSchema.from_level(level) for level in DEFAULT_LEVELS]


class BlindPresetService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_presets(self, user_id: str) -> List[PresetResponse]:
        """User's saved schedules, newest first"""
        try:
            result = self.supabase.table("blind_presets")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return [PresetResponse(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Failed to fetch blind presets: {e}")
            raise ServerError("Failed to fetch presets")

    def create_preset(self, user_id: str, preset_data: PresetCreate) -> PresetResponse:
        try:
            result = self.supabase.table("blind_presets").insert({
                "user_id": user_id,
                "name": preset_data.name.strip(),
                # Stored in the wire shape so presets round-trip unchanged
                "levels": [level.model_dump(by_alias=True) for level in preset_data.levels],
            }).execute()

            if not result.data:
                raise ServerError("Failed to create preset")

            logger.info(f"Blind preset {result.data[0]['id']} created by {user_id}")
            return PresetResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create blind preset: {e}")
            raise ServerError("Failed to create preset")

    def delete_preset(self, user_id: str, preset_id: str) -> bool:
        try:
            result = self.supabase.table("blind_presets")\
                .select("id, user_id")\
                .eq("id", preset_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise NotFoundError("Preset not found")
            if result.data[0]["user_id"] != user_id:
                raise ForbiddenError()

            self.supabase.table("blind_presets")\
                .delete()\
                .eq("id", preset_id)\
                .eq("user_id", user_id)\
                .execute()
            logger.info(f"Blind preset {preset_id} deleted")
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to delete blind preset: {e}")
            raise ServerError("Failed to delete preset")
