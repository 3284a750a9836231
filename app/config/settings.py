from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like deleting auth users

    # App
    app_name: str = "poker-ledger-backend"
    app_url: str = "http://localhost:3000"  # Base URL used to build invite links
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    rate_limit_enabled: bool = True

    # User session (Supabase access token carried in a cookie)
    session_cookie_name: str = "poker-session"
    session_max_age: int = 60 * 60 * 24 * 7
    session_cookie_secure: bool = False

    # Admin back-office (separate realm, signed session cookie)
    admin_username: str = "chefe"
    admin_password: Optional[str] = None
    admin_session_secret: str = "admin-session-secret-change-me"
    admin_session_cookie_name: str = "poker-admin-session"
    admin_session_max_age: int = 60 * 60

    # Invites
    invite_expiry_days: int = 7

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
