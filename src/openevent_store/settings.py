"""
openevent_store.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the store and its workers.
- Offer a cached settings instance for the composition root.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """
    Device-local defaults:
    - One SQLite file per installation
    - Env overrides for tests and debugging builds
    """

    model_config = SettingsConfigDict(env_prefix="OPENEVENT_", case_sensitive=False)

    service_name: str = "openevent-store"
    log_level: str = "INFO"

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./openevent.db"
    echo_sql: bool = False
    # Seconds a connection waits on a locked database before failing.
    busy_timeout: float = Field(default=10.0, gt=0)

    # Background writes
    write_concurrency: int = Field(default=2, ge=1)

    # Logging
    log_json: bool = True


@lru_cache(maxsize=1)
def get_settings() -> StoreSettings:
    # Cache avoids re-parsing env vars on every lookup.
    return StoreSettings()


# --- Module Notes -----------------------------------------------------------
# Tests build `StoreSettings(database_url=...)` directly instead of going through the cache.
