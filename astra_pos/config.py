from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from the environment (or a .env file)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Astra POS"
    LOG_LEVEL: str = "INFO"

    # In-memory SQLite unless told otherwise; durability is not required
    DATABASE_URL: str = "sqlite://"

    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300

    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    TAX_RATE: Decimal = Decimal("0.08")
    LOW_STOCK_THRESHOLD: int = 10
    SEED_DEMO_CATALOG: bool = False

    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )
    GEMINI_MODEL: str = "gemini-2.5-flash"


@lru_cache
def get_settings() -> Settings:
    return Settings()
