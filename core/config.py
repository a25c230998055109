"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_duration_seconds -> SESSION_DURATION_SECONDS).

  @model_validator(mode="after"): Cross-field validation of the session
      policy once every field is resolved.

Settings are not read by the core components directly. auth.sessions builds
an explicit SessionPolicy from them (SessionPolicy.from_settings), so tests
can construct a policy with any duration without touching the environment.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'authgate.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # 30 days.
    session_duration_seconds: int = 60 * 60 * 24 * 30
    # Renew once remaining lifetime drops to this fraction of the duration.
    session_renew_ratio: float = 0.5
    # False leaves expired rows for the purge task instead of deleting on read.
    session_delete_expired_on_read: bool = True
    # 0 disables the background purge task.
    session_purge_interval_seconds: int = 0
    session_cookie_name: str = "auth_session"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_policy(self) -> "Settings":
        """Reject session settings that would make every session dead or immortal."""
        if self.session_duration_seconds <= 0:
            raise ValueError("SESSION_DURATION_SECONDS must be positive.")
        if not 0 < self.session_renew_ratio <= 1:
            raise ValueError("SESSION_RENEW_RATIO must be in (0, 1].")
        if self.session_purge_interval_seconds < 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must not be negative.")
        if not self.session_cookie_name:
            raise ValueError("SESSION_COOKIE_NAME must not be empty.")
        if not self.session_delete_expired_on_read and not self.session_purge_interval_seconds:
            logger.warning(
                "Expired sessions are neither deleted on read nor purged in the background; "
                "run 'python main.py purge-sessions' periodically."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
