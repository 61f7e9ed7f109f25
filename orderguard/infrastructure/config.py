"""Application configuration.

Loads settings from environment variables (prefixed ``ORDERGUARD_``)
with sensible defaults.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./orderguard.db"

    # Locking
    lock_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Lifetime of a freshly acquired edit lock",
    )

    # Logging
    log_level: str = "INFO"

    @property
    def lock_ttl(self) -> timedelta:
        return timedelta(seconds=self.lock_ttl_seconds)

    class Config:
        """Pydantic configuration."""

        env_prefix = "ORDERGUARD_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
