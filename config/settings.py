"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend configuration
    backend_base_url: str = "http://localhost:54321/functions/v1"
    backend_api_key: Optional[str] = None
    request_timeout_seconds: float = 30.0

    # Avatar storage
    storage_base_url: str = "http://localhost:54321/storage/v1"
    avatar_bucket: str = "member-avatars"

    # Cache settings
    cache_enabled: bool = True
    cache_database_url: str = "sqlite:///./bookclub_cache.db"

    # Per-entity freshness windows (seconds)
    club_ttl_seconds: int = 86400       # 24 hours
    member_ttl_seconds: int = 86400     # 24 hours
    session_ttl_seconds: int = 21600    # 6 hours
    server_ttl_seconds: int = 604800    # 7 days
    book_ttl_seconds: int = 604800      # 7 days

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
