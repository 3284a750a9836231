from typing import Optional, List, Literal
from datetime import datetime

from app.core.responses import CamelModel
from app.modules.games.schemas import GameType


class Period(CamelModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class UserSummary(CamelModel):
    total_groups: int
    total_games_played: int
    total_spent: str
    total_won: str
    overall_net_result: str


class GroupBreakdownItem(CamelModel):
    id: str
    name: Optional[str] = None
    games_played: int
    total_spent: str
    total_won: str
    net_result: str


class UserRecentGame(CamelModel):
    id: str
    group_id: str
    group_name: Optional[str] = None
    date: datetime
    game_type: GameType
    spent: str
    won: str
    net: str


class UserDashboard(CamelModel):
    period: Period
    summary: UserSummary
    group_breakdown: List[GroupBreakdownItem]
    recent_games: List[UserRecentGame]


class UserDashboardEnvelope(CamelModel):
    dashboard: UserDashboard


class GroupSummaryStats(CamelModel):
    total_games: int
    cash_games: int
    tournaments: int
    total_spent: str
    total_won: str
    group_net_result: str


class PlayerStat(CamelModel):
    type: Literal["user", "guest"]
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    games_played: int
    total_spent: str
    total_won: str
    net_result: str


class GroupRecentGame(CamelModel):
    id: str
    date: datetime
    game_type: GameType
    participant_count: int
    total_spent: str
    total_won: str


class GroupDashboard(CamelModel):
    period: Period
    summary: GroupSummaryStats
    player_stats: List[PlayerStat]
    recent_games: List[GroupRecentGame]


class GroupDashboardEnvelope(CamelModel):
    dashboard: GroupDashboard
