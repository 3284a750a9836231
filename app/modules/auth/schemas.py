from pydantic import EmailStr, Field
from typing import Optional

from app.core.responses import CamelModel
from app.modules.users.schemas import UserResponse


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=2, max_length=100)


class SigninRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResult(CamelModel):
    user: UserResponse
    # Also set as an http-only cookie; returned for clients that send a Bearer header instead
    access_token: Optional[str] = None
