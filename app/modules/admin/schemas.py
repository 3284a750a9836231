from pydantic import Field
from typing import Optional, List
from datetime import datetime

from app.core.responses import CamelModel


class AdminLogin(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminSession(CamelModel):
    username: str


class AdminSessionEnvelope(CamelModel):
    admin: AdminSession


class RecentActivity(CamelModel):
    users_last_7_days: int = Field(alias="usersLast7Days")
    users_last_30_days: int = Field(alias="usersLast30Days")
    games_last_7_days: int = Field(alias="gamesLast7Days")
    games_last_30_days: int = Field(alias="gamesLast30Days")


class TopGroup(CamelModel):
    id: str
    name: str
    member_count: int
    game_count: int


class AdminStats(CamelModel):
    total_users: int
    total_groups: int
    total_games: int
    total_participants: int
    recent_activity: RecentActivity
    top_groups: List[TopGroup]


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AdminUserItem(CamelModel):
    id: str
    name: Optional[str] = None
    email: str
    created_at: Optional[datetime] = None
    group_count: int = 0
    game_count: int = 0


class AdminUserList(CamelModel):
    users: List[AdminUserItem]
    pagination: Pagination


class AdminGroupItem(CamelModel):
    id: str
    name: str
    created_at: Optional[datetime] = None
    member_count: int = 0
    game_count: int = 0


class AdminGroupList(CamelModel):
    groups: List[AdminGroupItem]
    pagination: Pagination
