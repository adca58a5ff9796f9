from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.schedule import MIN_LEAD_DAYS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env-local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Campaign Draft Service", alias="APP_NAME")
    environment: Literal["local", "dev", "staging", "prod"] = Field(
        default="local", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    marketplace_api_url: str = Field(
        default="http://localhost:5000/api",
        validation_alias=AliasChoices("MARKETPLACE_API_URL", "API_BASE_URL"),
    )
    marketplace_api_token: str | None = Field(
        default=None, alias="MARKETPLACE_API_TOKEN"
    )
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")

    # Pricing / scheduling
    default_currency: str = Field(default="USD", alias="DEFAULT_CURRENCY")
    min_lead_days: int = Field(default=MIN_LEAD_DAYS, ge=0, alias="MIN_LEAD_DAYS")
    price_debounce_ms: int = Field(default=500, ge=0, alias="PRICE_DEBOUNCE_MS")
    block_submit_on_price_failure: bool = Field(
        default=True, alias="BLOCK_SUBMIT_ON_PRICE_FAILURE"
    )
    # Seconds a draft session lives after it is opened.
    draft_session_ttl: float = Field(default=3600.0, gt=0, alias="DRAFT_SESSION_TTL")

    db_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    db_port: int = Field(default=5432, alias="POSTGRES_PORT")
    db_user: str = Field(default="app", alias="POSTGRES_USER")
    db_password: str = Field(default="app", alias="POSTGRES_PASSWORD")
    db_name: str = Field(default="app", alias="POSTGRES_DB")

    database_url_override: str | None = Field(default=None, alias="DATABASE_URL")

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def price_debounce_window(self) -> float:
        return self.price_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()
