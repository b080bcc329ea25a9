from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "direct-order"
    env: str = "dev"
    log_level: str = "INFO"

    database_url: str = Field("sqlite:///./direct_order.db", alias="DATABASE_URL")

    # Lexicon caches (per tenant)
    mappings_cache_ttl_seconds: int = Field(60, alias="MAPPINGS_CACHE_TTL_SECONDS")
    lexicon_cache_ttl_seconds: int = Field(300, alias="LEXICON_CACHE_TTL_SECONDS")


settings = Settings()
