"""
core/config.py -- Yearbook settings, read from the environment.

Every setting maps to an upper-case environment variable of the same name
(session_max_age <- SESSION_MAX_AGE) and may also come from a .env file in
the working directory. Other modules ask get_settings() for values instead of
reading os.environ themselves, and get the same cached Settings each time.

What must be present at startup:
  DATABASE_URL   -- no default. Without it get_settings() raises a
                    ValidationError and the server never starts.
  SESSION_SECRET -- keys the HMAC that turns a cookie token into a session
                    row id. Changing it logs every user out, so a production
                    process will not invent one. With DEBUG=true a throwaway
                    secret is generated instead. Shorter than 32 characters
                    is always refused.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or entries/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("yearbook.config")


class Settings(BaseSettings):
    """Process-wide configuration. Unknown variables in .env are ignored."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = Field(min_length=1)

    # ------------------------------------------------------------------
    # Database pool (ignored for SQLite)
    # ------------------------------------------------------------------

    db_pool_size: int = 5
    db_pool_timeout: int = 30

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # "" means unset; validate_session_secret replaces or rejects it.
    session_secret: str = ""
    session_cookie_name: str = "sid"
    session_max_age: int = Field(default=24 * 60 * 60, gt=0)
    session_purge_interval: int = Field(default=15 * 60, gt=0)
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    max_body_bytes: int = 1024 * 1024
    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = []

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_secret(self) -> "Settings":
        """Fill in or reject SESSION_SECRET once every field is loaded."""
        if not self.session_secret and not self.debug:
            raise ValueError(
                "SESSION_SECRET is required unless DEBUG=true. "
                "Generate one with `python -c 'import secrets; print(secrets.token_hex(32))'`."
            )
        if not self.session_secret:
            # Sessions signed with this secret die with the process.
            self.session_secret = secrets.token_hex(32)
            logger.warning("DEBUG is on and SESSION_SECRET is unset; using a per-process secret")
        if len(self.session_secret) < 32:
            raise ValueError("SESSION_SECRET must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build Settings on first call and return the same instance afterwards.

    Tests that change the environment call get_settings.cache_clear().
    """
    return Settings()
