from pydantic import Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.core.ids import UuidStr
from app.core.responses import CamelModel


class GameType(str, Enum):
    CASH = "CASH"
    TOURNAMENT = "TOURNAMENT"


class ParticipantInput(CamelModel):
    user_id: Optional[UuidStr] = None
    guest_name: Optional[str] = Field(None, max_length=100)
    spent: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    won: Decimal = Field(ge=0, max_digits=12, decimal_places=2)


class GameCreate(CamelModel):
    date: datetime
    game_type: GameType
    notes: Optional[str] = Field(None, max_length=1000)
    participants: List[ParticipantInput]


class GameUpdate(GameCreate):
    pass


class ParticipantResponse(CamelModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    guest_name: Optional[str] = None
    spent: str
    won: str
    net: str


class GameResponse(CamelModel):
    id: str
    group_id: str
    group_name: Optional[str] = None
    date: datetime
    game_type: GameType
    notes: Optional[str] = None
    participant_count: int
    total_spent: str
    total_won: str
    participants: List[ParticipantResponse]
    created_at: datetime
    updated_at: Optional[datetime] = None


class GameEnvelope(CamelModel):
    game: GameResponse


class GameListResponse(CamelModel):
    games: List[GameResponse]
