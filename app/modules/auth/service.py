import hashlib
import time
from supabase import Client
from app.core.exceptions import ConflictError, ServerError, UnauthenticatedError
from app.modules.auth.schemas import SignupRequest, SigninRequest, AuthResult
from app.modules.users.schemas import UserResponse
from fastapi import HTTPException
from typing import Callable, Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def _cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    """User realm: Supabase Auth for credentials, ``user_profiles`` for name and email.

    ``auth_client`` is the shared anon client, used only with an explicit token.
    ``new_session`` builds a throwaway client for sign in and sign up, which
    leave the new session on the client that made the call. ``supabase`` is the
    data client used for profile rows.
    """

    def __init__(self, supabase: Client, auth_client: Client, new_session: Callable[[], Client]):
        self.supabase = supabase
        self.auth_client = auth_client
        self.new_session = new_session

    def _get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def signup(self, signup_data: SignupRequest) -> AuthResult:
        """Register a new user; email uniqueness is case-insensitive"""
        email = str(signup_data.email).strip().lower()
        name = signup_data.name.strip()
        try:
            existing = self.supabase.table("user_profiles")\
                .select("id")\
                .eq("email", email)\
                .limit(1)\
                .execute()
            if existing.data:
                raise ConflictError("Email already registered")

            try:
                auth_response = self.new_session().auth.sign_up({
                    "email": email,
                    "password": signup_data.password,
                    "options": {
                        "data": {"name": name}
                    }
                })
            except Exception as e:
                error_message = str(e).lower()
                if "already registered" in error_message or "already exists" in error_message:
                    raise ConflictError("Email already registered")
                raise

            if not auth_response.user:
                raise ServerError("Failed to create account")

            profile = self.supabase.table("user_profiles").insert({
                "id": auth_response.user.id,
                "email": email,
                "name": name,
            }).execute()

            logger.info(f"User {auth_response.user.id} signed up")
            session = auth_response.session
            return AuthResult(
                user=UserResponse(**profile.data[0]),
                access_token=session.access_token if session else None,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Signup error: {e}")
            raise ServerError("Failed to create account")

    def signin(self, signin_data: SigninRequest) -> AuthResult:
        """Authenticate with email and password"""
        email = str(signin_data.email).strip().lower()
        try:
            auth_response = self.new_session().auth.sign_in_with_password({
                "email": email,
                "password": signin_data.password
            })
        except Exception as e:
            logger.info(f"Signin failed for {email}: {e}")
            raise UnauthenticatedError("Invalid email or password")

        if not auth_response.user or not auth_response.session:
            raise UnauthenticatedError("Invalid email or password")

        try:
            user = auth_response.user
            profile = self._get_profile(user.id)
            if profile is None:
                # Account created outside signup (e.g. the Supabase dashboard)
                metadata = user.user_metadata or {}
                profile = self.supabase.table("user_profiles").insert({
                    "id": user.id,
                    "email": (user.email or email).lower(),
                    "name": metadata.get("name") or email.split("@")[0],
                }).execute().data[0]
            return AuthResult(
                user=UserResponse(**profile),
                access_token=auth_response.session.access_token,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Signin error: {e}")
            raise ServerError("Failed to sign in")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a session token to ``{id, email, name}``. Uses short TTL cache to reduce auth API calls."""
        cache_key = _cache_key(token)
        now = time.monotonic()
        if cache_key in _AUTH_USER_CACHE:
            user_data, expiry = _AUTH_USER_CACHE[cache_key]
            if now < expiry:
                return user_data
            del _AUTH_USER_CACHE[cache_key]

        try:
            user_response = self.auth_client.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug(f"Token rejected: {e}")
            raise UnauthenticatedError()
        if not user_response or not user_response.user:
            raise UnauthenticatedError()

        user = user_response.user
        profile = self._get_profile(user.id)
        if profile is None:
            # Profile removed (e.g. by an admin delete) while the token is still valid
            raise UnauthenticatedError()

        user_data = {
            "id": user.id,
            "email": profile.get("email") or user.email,
            "name": profile.get("name"),
        }
        if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
        return user_data

    def get_profile(self, user_id: str) -> UserResponse:
        profile = self._get_profile(user_id)
        if profile is None:
            raise UnauthenticatedError()
        return UserResponse(**profile)

    def signout(self, token: Optional[str]) -> bool:
        """Revoke the caller's own session; the cookie is cleared by the route either way"""
        if not token:
            return True
        _AUTH_USER_CACHE.pop(_cache_key(token), None)
        try:
            self.auth_client.auth.admin.sign_out(token, "local")
            return True
        except Exception as e:
            logger.warning(f"Supabase sign out failed: {e}")
            return False
