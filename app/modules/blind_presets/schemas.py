from pydantic import Field
from typing import List
from datetime import datetime

from app.core.responses import CamelModel
from app.modules.blind_timer.timer import BlindLevel


class BlindLevelSchema(CamelModel):
    small_blind: int = Field(ge=0)
    big_blind: int = Field(ge=0)
    ante: int = Field(0, ge=0)
    duration_minutes: int = Field(ge=1)

    @classmethod
    def from_level(cls, level: BlindLevel) -> "BlindLevelSchema":
        return cls(
            small_blind=level.small_blind,
            big_blind=level.big_blind,
            ante=level.ante,
            duration_minutes=level.duration_minutes,
        )


class PresetCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    levels: List[BlindLevelSchema] = Field(min_length=1)


class PresetResponse(CamelModel):
    id: str
    name: str
    levels: List[BlindLevelSchema]
    created_at: datetime


class PresetEnvelope(CamelModel):
    preset: PresetResponse


class PresetListResponse(CamelModel):
    presets: List[PresetResponse]


class DefaultLevelsResponse(CamelModel):
    levels: List[BlindLevelSchema]
