from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "reviewhub"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "REVIEWHUB_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/reviewhub",
        validation_alias=AliasChoices("DATABASE_URL", "REVIEWHUB_DATABASE_URL"),
    )
    db_pool_size: int = Field(default=5, validation_alias=AliasChoices("DB_POOL_SIZE", "REVIEWHUB_DB_POOL_SIZE"))
    db_echo: bool = Field(default=False, validation_alias=AliasChoices("DB_ECHO", "REVIEWHUB_DB_ECHO"))
    redis_url: str = Field(default="redis://redis:6379/0", validation_alias=AliasChoices("REDIS_URL", "REVIEWHUB_REDIS_URL"))
    admin_cors_origins: list[str] = Field(
        default=["*"], validation_alias=AliasChoices("ADMIN_CORS_ORIGINS", "REVIEWHUB_ADMIN_CORS_ORIGINS")
    )
    celery_enabled: bool = Field(default=True, validation_alias=AliasChoices("CELERY_ENABLED", "REVIEWHUB_CELERY_ENABLED"))
    # Safety bound per source location; reviews.maxReviews applies later across the merged set.
    payload_reviews_per_location: int = Field(
        default=50,
        validation_alias=AliasChoices("PAYLOAD_REVIEWS_PER_LOCATION", "REVIEWHUB_PAYLOAD_REVIEWS_PER_LOCATION"),
    )
    enforce_review_policy: bool = Field(
        default=False,
        validation_alias=AliasChoices("ENFORCE_REVIEW_POLICY", "REVIEWHUB_ENFORCE_REVIEW_POLICY"),
    )
    payload_cache_max_age_sec: int = Field(
        default=60,
        validation_alias=AliasChoices("PAYLOAD_CACHE_MAX_AGE_SEC", "REVIEWHUB_PAYLOAD_CACHE_MAX_AGE_SEC"),
    )
    payload_stale_while_revalidate_sec: int = Field(
        default=300,
        validation_alias=AliasChoices(
            "PAYLOAD_STALE_WHILE_REVALIDATE_SEC", "REVIEWHUB_PAYLOAD_STALE_WHILE_REVALIDATE_SEC"
        ),
    )

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
