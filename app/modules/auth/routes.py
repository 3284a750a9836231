from fastapi import APIRouter, Depends, Response
from app.config import settings
from app.modules.auth.schemas import SignupRequest, SigninRequest, AuthResult
from app.modules.auth.service import AuthService
from app.modules.users.schemas import UserEnvelope
from app.core.dependencies import get_auth_service, get_current_user, get_session_token
from app.core.responses import ApiResponse, MessageData, ok, message
from typing import Dict, Optional

router = APIRouter(prefix="/auth", tags=["auth"])


def set_session_cookie(response: Response, token: Optional[str]) -> None:
    if not token:
        return
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure or settings.is_production,
    )


@router.post("/signup", response_model=ApiResponse[AuthResult], status_code=201)
async def signup(
    signup_data: SignupRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Create an account and start a session"""
    result = service.signup(signup_data)
    set_session_cookie(response, result.access_token)
    return ok(result)


@router.post("/signin", response_model=ApiResponse[AuthResult])
async def signin(
    signin_data: SigninRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    result = service.signin(signin_data)
    set_session_cookie(response, result.access_token)
    return ok(result)


@router.post("/signout", response_model=ApiResponse[MessageData])
async def signout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service)
):
    service.signout(token)
    response.delete_cookie(settings.session_cookie_name)
    return message("Signed out successfully")


@router.get("/me", response_model=ApiResponse[UserEnvelope])
async def me(
    user_data: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Current user's profile"""
    return ok(UserEnvelope(user=service.get_profile(user_data["id"])))
