"""
Application configuration using Pydantic Settings.

All settings are loaded from environment variables or .env file.
Nothing environment-specific is hardcoded: datastore URL, cache endpoint,
TTLs, search radii and price brackets are all configurable.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hotel_geosearch.search.pricing import DEFAULT_PRICE_BRACKETS, PriceBracket, PriceTable


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    url: str = "sqlite:///./data/hotel_geosearch.db"
    connect_timeout: int = 10

    model_config = SettingsConfigDict(env_prefix="DATABASE_")


class CacheSettings(BaseSettings):
    """Cache backend and TTL settings (seconds)."""

    redis_url: Optional[str] = None
    socket_timeout: float = 1.0
    max_entries: int = 1000
    default_ttl: int = 300
    search_ttl: int = 300
    statistics_ttl: int = 3600
    suggestion_ttl: int = 600
    reference_ttl: int = 3600

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    @field_validator("redis_url", mode="before")
    @classmethod
    def empty_url_is_none(cls, v: str | None) -> str | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("max_entries")
    @classmethod
    def positive_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_entries must be at least 1")
        return v


class SearchSettings(BaseSettings):
    """Search engine and autocomplete tuning."""

    default_limit: int = 20
    suggestion_limit: int = 10
    suggestion_timeout: float = 2.0
    nearby_radius_km: float = 1.0
    walkable_radius_km: float = 3.0
    accessible_radius_km: float = 10.0
    area_radius_km: float = 25.0
    price_brackets: list[PriceBracket] = list(DEFAULT_PRICE_BRACKETS)

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    def price_table(self) -> PriceTable:
        """Build the validated bracket table. Raises InvalidPriceTableError."""
        return PriceTable(self.price_brackets)


class APISettings(BaseSettings):
    """FastAPI server settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_prefix="API_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    file: str = "logs/hotel_geosearch.log"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings — aggregates all sub-settings."""

    database: DatabaseSettings = DatabaseSettings()
    cache: CacheSettings = CacheSettings()
    search: SearchSettings = SearchSettings()
    api: APISettings = APISettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def setup(self) -> None:
        """Initialize application: create the log and SQLite data directories."""
        Path(self.logging.file).parent.mkdir(parents=True, exist_ok=True)
        if self.database.url.startswith("sqlite:///") and ":memory:" not in self.database.url:
            Path(self.database.url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance, import this in other modules
settings = Settings()
