from typing import Optional, List
from datetime import datetime

from app.core.responses import CamelModel


class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    created_at: Optional[datetime] = None


class UserEnvelope(CamelModel):
    user: UserResponse


class UserRef(CamelModel):
    """Compact user reference embedded in invites, games and members"""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class UserSearchResult(CamelModel):
    id: str
    name: str
    email: str


class UserSearchResponse(CamelModel):
    users: List[UserSearchResult]
