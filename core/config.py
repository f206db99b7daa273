"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Gatekeeper happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved. Dev mode (DEBUG=true) tolerates insecure defaults with a
      warning; production mode refuses to start with them.

  auth_config(): the auth layer never imports this module. The application
      builds an AuthConfig from Settings and passes it to AuthService.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key weakens every issued token.

  [M7] In production mode a missing SECRET_KEY is a hard startup failure. The
       dev-mode random key is a convenience only and is logged as insecure.

  [M8] BCRYPT_ROUNDS below 10 is refused in production mode. Tests run with
       DEBUG=true and a low cost to stay fast.

Layer rule: core/ is the kernel. This module may import from auth.models
(a pure data module) but not from api/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from auth.models import AuthConfig
from auth.store import DEFAULT_DB_URL

logger = logging.getLogger("gatekeeper.config")

_MIN_PRODUCTION_ROUNDS = 10


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = Field(default=3600, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    jwt_algorithm: str = "HS256"
    registration_enabled: bool = True

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_security(self) -> "Settings":
        """Enforce SECRET_KEY and bcrypt cost policy [M6][M7][M8].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start without SECRET_KEY or with a weak
            bcrypt cost.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "INSECURE: using auto-generated SECRET_KEY (DEBUG=true). "
                    "Tokens will not verify across restarts. Never run like this in production."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.bcrypt_rounds < _MIN_PRODUCTION_ROUNDS:
            if not self.debug:
                raise ValueError(f"BCRYPT_ROUNDS must be at least {_MIN_PRODUCTION_ROUNDS} in production mode.")
            logger.warning("INSECURE: BCRYPT_ROUNDS=%d is below the production minimum", self.bcrypt_rounds)
        return self

    def auth_config(self) -> AuthConfig:
        """Return the AuthConfig handed to AuthService at construction."""
        return AuthConfig(
            secret_key=self.secret_key,
            token_expire_seconds=self.token_expire_seconds,
            bcrypt_rounds=self.bcrypt_rounds,
            algorithm=self.jwt_algorithm,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
