"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for DevCamper happen here. No module should
call os.getenv() or os.environ.get() directly. The Settings object is built
once by get_settings() when the app is assembled, then handed to the objects
that need it (TokenIssuer, ResetTokenGenerator, AuthService, EmailSender).
Nothing below the api/ layer calls get_settings() on its own.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, jwt_expire_days -> JWT_EXPIRE_DAYS).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Used for the environment-conditional SECRET_KEY policy.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing and the
  reset-token HMAC both rely on key entropy.

  In production mode a missing SECRET_KEY is a hard startup failure. Any other
  environment generates a throwaway key with a warning.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or directory/.
"""

import logging
import secrets
from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("devcamper.config")


class Environment(str, Enum):
    development = "development"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file, as long as ENVIRONMENT is not
    production (production requires SECRET_KEY).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: Environment = Environment.production
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///devcamper.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_expire_days: int = Field(default=30, gt=0)
    jwt_cookie_expire_days: int = Field(default=30, gt=0)
    reset_token_expire_minutes: int = Field(default=10, gt=0)

    # ------------------------------------------------------------------
    # Email (password reset delivery). Empty smtp_host disables delivery.
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = False
    smtp_start_tls: bool = True
    smtp_timeout_seconds: float = 10.0
    from_email: str = "noreply@devcamper.io"
    from_name: str = "DevCamper"

    # ------------------------------------------------------------------
    # Rate limiting and listing
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    default_page_size: int = Field(default=25, gt=0, le=100)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.production

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Development: auto-generate a random key with a warning. Sessions and
            outstanding reset links will not survive a restart.

        Production: refuse to start if SECRET_KEY is missing.

        Both: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if not self.is_production:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set ENVIRONMENT=development."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or build Settings(...) directly
    and pass it to the object under test.
    """
    return Settings()
