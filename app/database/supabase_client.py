from supabase import create_client, Client, ClientOptions
from app.config import settings
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide Supabase clients.

    ``anon`` talks to Supabase Auth on behalf of users and never holds a
    session: it only verifies tokens passed in explicitly. ``data`` carries the
    service role key when one is configured: it runs the group/game RPC
    functions and the back-office deletes, which must not depend on RLS.
    """

    _anon: Optional[Client] = None
    _data: Optional[Client] = None

    @staticmethod
    def _create(key: Optional[str]) -> Client:
        if not settings.supabase_url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        options = ClientOptions(persist_session=False, auto_refresh_token=False)
        return create_client(settings.supabase_url, key, options=options)

    @classmethod
    def anon(cls) -> Client:
        if cls._anon is None:
            cls._anon = cls._create(settings.supabase_key)
        return cls._anon

    @classmethod
    def data(cls) -> Client:
        if cls._data is None:
            if settings.supabase_service_role_key:
                cls._data = cls._create(settings.supabase_service_role_key)
            else:
                logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; data access uses the anon key")
                cls._data = cls.anon()
        return cls._data

    @classmethod
    def session(cls) -> Client:
        """New anon client for one credential exchange (sign in or sign up).

        Supabase Auth keeps the resulting session on the client that made the
        call, so it must not be one of the shared clients.
        """
        return cls._create(settings.supabase_key)

    @classmethod
    def reset_client(cls):
        cls._anon = None
        cls._data = None


def get_supabase() -> Client:
    return SupabaseClient.data()


def get_supabase_auth() -> Client:
    """Anon client for token checks and revocation; holds no session of its own."""
    return SupabaseClient.anon()


def get_supabase_session_factory() -> Callable[[], Client]:
    return SupabaseClient.session
