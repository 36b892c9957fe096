"""Configuration management for Kinodeck."""

from pydantic import NonNegativeInt, PositiveInt, field_validator
from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from urllib.parse import urlparse


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # TMDB
    tmdb_api_key: str | None = None  # Required once a TMDBSource is built
    tmdb_language: str = "en-US"
    tmdb_timeout: PositiveInt = 10  # Seconds, applied by tmdbsimple per request
    tmdb_retries: NonNegativeInt = 3
    tmdb_cache_ttl: PositiveInt = 1800  # Seconds to keep raw payloads around

    # Database (durable storage for the watchlist)
    database_url: str = "sqlite:///./kinodeck.db"
    watchlist_key: str = "watchlist"

    # Network settings
    # Proxy configuration in the format http://host:port or socks5://host:port
    proxy: str | None = None

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        if v is None:
            return v

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "socks4", "socks5", "socks5h"):
            raise ValueError(
                "Proxy must be a valid URL with scheme http/https/socks4/socks5/socks5h"
            )
        if not parsed.netloc:
            raise ValueError("Proxy must have a host and port")
        return v

    # App settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
