from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Literal

from analytics.intent_config import IntentConfig, load_intent_config


class Settings(BaseSettings):
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "fit_intent"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    STORE_BACKEND: Literal["postgres", "memory"] = "postgres"

    REDIS_URL: str | None = None
    METRICS_CACHE_TTL: int = 30

    SENTRY_DSN: str | None = None
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    INTENT_POLICY_FILE: str | None = None
    EVENTS_RATE_LIMIT: str = "600/minute"
    CORS_ORIGINS: List[str] = ["*"]

    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Fit Intent API"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_intent_config() -> IntentConfig:
    return load_intent_config(get_settings().INTENT_POLICY_FILE)
