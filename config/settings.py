"""
Application settings loaded from environment variables.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

DEFAULT_SESSION_SECRET = "change-me-session-secret"


class SessionPolicy(BaseModel):
    """Immutable session configuration handed to the store and the gate."""

    model_config = ConfigDict(frozen=True)

    cookie_name: str = "auth_session"
    secret: str = DEFAULT_SESSION_SECRET
    max_age_seconds: int = 900
    secure: bool = False
    http_only: bool = True
    samesite: Literal["lax", "strict", "none"] = "lax"
    backing: Literal["memory", "database"] = "memory"
    sweep_interval_seconds: int = 3600
    rolling: bool = False


class Settings(BaseSettings):
    # ── Server ───────────────────────────────────────────────────────────
    port: int = 5000
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origins: list = ["*"]

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./auth.db"

    # ── Authentication ───────────────────────────────────────────────────
    auth_strategy: Literal["session", "header"] = "session"
    bcrypt_rounds: int = 10

    # ── Sessions ─────────────────────────────────────────────────────────
    session_backing: Literal["memory", "database"] = "memory"
    session_cookie_name: str = "auth_session"
    session_secret: str = DEFAULT_SESSION_SECRET         # HMAC secret for cookie signatures
    session_max_age_seconds: int = 900                   # 15 minutes
    session_cookie_secure: bool = False                  # must be true behind TLS
    session_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    session_sweep_interval_seconds: int = 3600           # 1 hour
    session_rolling: bool = False
    session_on_register: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    def session_policy(self) -> SessionPolicy:
        """Freeze the session-related settings into a ``SessionPolicy``."""
        return SessionPolicy(
            cookie_name=self.session_cookie_name,
            secret=self.session_secret,
            max_age_seconds=self.session_max_age_seconds,
            secure=self.session_cookie_secure,
            samesite=self.session_cookie_samesite,
            backing=self.session_backing,
            sweep_interval_seconds=self.session_sweep_interval_seconds,
            rolling=self.session_rolling,
        )


config = Settings()
