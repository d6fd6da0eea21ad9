"""Configuration settings using pydantic-settings."""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_PATH: str = Field(
        default="data/reading_tracker.db",
        description="Path to SQLite database file"
    )

    # Accounts
    ACCOUNT_NUMBER_PREFIX: str = Field(
        default="ACC",
        description="Prefix of generated account numbers"
    )
    ACCOUNT_NUMBER_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="How many account numbers to try before giving up on registration"
    )
    SALT_BYTES: int = Field(
        default=16,
        ge=8,
        description="Length of the random password salt in bytes"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
