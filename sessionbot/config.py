"""Application configuration using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Session Bot"
    environment: str = "development"
    log_level: str = "info"
    debug: bool = False

    # Telegram
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = Field(default_factory=list)

    # MongoDB
    mongodb_uri: str = "mongodb://mongodb:27017"
    mongodb_database: str = "sessionbot"

    # Sessions
    sessions_per_page: int = Field(default=6, ge=1)
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency for injecting settings."""
    return settings
