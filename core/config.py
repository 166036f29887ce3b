"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Yamerito happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret_key -> JWT_SECRET_KEY). Type coercion and validation
      are built in.

Security notes:
  JWT_SECRET_KEY shorter than 32 chars is rejected outright. HMAC-SHA256 token
  signing relies on key entropy -- a short key weakens every session.

  A missing JWT_SECRET_KEY is NOT rejected here: CLI commands such as
  `main.py hash-password` never touch tokens and must work without it. The
  token layer (auth/tokens.init_signing_secret) turns absence into a fatal
  ConfigError at API startup.

Layer rule: core/ is the kernel. This module may not import from api/, web/
or auth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("yamerito.config")

_MIN_SECRET_LENGTH = 32


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
    # Empty string is the sentinel for "not configured".
    jwt_secret_key: str = ""
    database_url: str = "sqlite:///./yamerito.db"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    api_server_host: str = "0.0.0.0"  # noqa: S104 # nosec B104 -- container bind address
    api_server_port: int = 8080
    cors_origins: list[str] = ["http://localhost:5173"]
    allowed_hosts: list[str] = ["*"]
    login_rate_limit: str = "10/minute"
    frontend_dist_dir: str = "frontend/dist"

    # ------------------------------------------------------------------
    # Admin seeding (migrate command). Both empty = no seed.
    # ------------------------------------------------------------------

    seed_admin_username: str = ""
    seed_admin_password: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Reject a configured JWT_SECRET_KEY shorter than 32 characters."""
        if self.jwt_secret_key and len(self.jwt_secret_key) < _MIN_SECRET_LENGTH:
            logger.error(
                "JWT_SECRET_KEY rejected: %d characters, need at least %d.",
                len(self.jwt_secret_key),
                _MIN_SECRET_LENGTH,
            )
            raise ValueError(f"JWT_SECRET_KEY must be at least {_MIN_SECRET_LENGTH} characters.")
        return self

    @property
    def seed_admin_configured(self) -> bool:
        return bool(self.seed_admin_username and self.seed_admin_password)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
