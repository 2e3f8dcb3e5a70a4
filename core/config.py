"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Postboard happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL).

Connection URLs:
  DATABASE_URL wins when set. Otherwise the PostgreSQL URL is assembled from
  DB_HOST / DB_PORT / DB_USER / DB_PASSWORD / DB_NAME, the variables the
  docker-compose deployment already exports.

  SESSION_STORE_URL wins when set. Otherwise redis://REDIS_HOST:REDIS_PORT/0.
  sqlite:///path and memory:// select the SQLite key-value backend, which is
  meant for local development without a Redis server.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, posts/, or cache/.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("postboard.config")


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
    log_level: str = "INFO"
    host: str = "0.0.0.0"  # nosec B104 -- container deployment binds all interfaces
    port: int = 8080
    # Prometheus request metrics and the GET /metrics endpoint.
    metrics_enabled: bool = True

    # ------------------------------------------------------------------
    # Relational store
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "myapp"
    db_password: str = "myapp123"
    db_name: str = "myapp"

    # ------------------------------------------------------------------
    # Session store
    # ------------------------------------------------------------------

    session_store_url: str = ""
    redis_host: str = "redis"
    redis_port: int = 6379
    # Fixed session lifetime. Never extended by activity.
    session_ttl_seconds: int = 24 * 60 * 60
    # Upper bound for any single call to the database or the session store.
    store_timeout_seconds: float = 3.0

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 12

    # Seed account created on startup if missing. Empty username disables it.
    seed_username: str = "testuser"
    seed_password: str = "password123"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        """bcrypt accepts cost factors 4..31 only."""
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("session_ttl_seconds")
    @classmethod
    def validate_session_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive.")
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def resolved_session_store_url(self) -> str:
        if self.session_store_url:
            return self.session_store_url
        return f"redis://{self.redis_host}:{self.redis_port}/0"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
