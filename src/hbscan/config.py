from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class NavigatorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HBSCAN_", extra="ignore")

    SERVICE_NAME: str = "hbscan-navigator"
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    REDIS_URL: str | None = None
    HISTORY_LIMIT: int = 5
    DEFAULT_PAGE_SIZE: int = 20
    HISTORY_STORAGE_KEY: str = "hbscan_search_history"
    SETTINGS_STORAGE_KEY: str = "hbscan_global_settings"


def load_settings(**overrides: object) -> NavigatorSettings:
    return NavigatorSettings(**overrides)
