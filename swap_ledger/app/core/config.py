from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Swap Ledger API"
    database_url: str = "sqlite:///swap_ledger.db"
    log_level: str = "INFO"
    sqlite_busy_timeout: float = 30.0
    account_create_retries: int = 3
    ticker_blacklist_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SWAP_LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
