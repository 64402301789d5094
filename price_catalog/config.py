"""
Configuration settings for the price catalog engine.

Uses Pydantic Settings to load environment variables for the remote price
store connection, mutation timeouts, pagination defaults, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PAGE_SIZE_OPTIONS: Tuple[int, ...] = (5, 10, 25, 50, 100)


class Settings(BaseSettings):
    # Remote price store
    store_url: str = Field("http://localhost:5000/api", alias="PRICE_STORE_URL")
    store_timeout_seconds: float = Field(30.0, alias="PRICE_STORE_TIMEOUT")
    store_retry_attempts: int = Field(3, alias="PRICE_STORE_RETRY_ATTEMPTS")
    store_retry_backoff_seconds: float = Field(0.5, alias="PRICE_STORE_RETRY_BACKOFF")

    # Mutations
    mutation_timeout_seconds: float = Field(10.0, alias="MUTATION_TIMEOUT")
    bulk_delete_concurrency: int = Field(8, alias="BULK_DELETE_CONCURRENCY")

    # View defaults
    default_page_size: int = Field(10, alias="DEFAULT_PAGE_SIZE")
    recent_limit: int = Field(100, alias="RECENT_LIMIT")
    currency_symbol: str = Field("₹", alias="CURRENCY_SYMBOL")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("store_retry_attempts", "bulk_delete_concurrency")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("default_page_size")
    @classmethod
    def _known_page_size(cls, value: int) -> int:
        if value not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page size must be one of {PAGE_SIZE_OPTIONS}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["PAGE_SIZE_OPTIONS", "Settings", "get_settings"]
