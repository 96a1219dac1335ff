from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Patient Registry"
    database_url: str = Field(
        default="postgresql+psycopg2://patients:patients@db:5432/patients",  # pragma: allowlist secret
        validation_alias=AliasChoices("DATABASE_URL", "DATABASE"),
    )
    port: int = 3000
    db_pool_size: int = 10
    static_dir: str = "build"
    public_dir: str = "public"
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
