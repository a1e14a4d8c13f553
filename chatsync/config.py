"""
Application configuration using Pydantic Settings
"""
import logging
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./store/chatsync.db"
    sql_echo: bool = False
    sqlite_busy_timeout: float = 30.0

    # Media blob storage
    media_dir: str = "./uploads/media"
    media_url_prefix: str = "/uploads/media"
    media_fetch_timeout: float = 30.0

    # Query defaults
    recent_window_hours: int = 24
    default_message_limit: int = 50
    media_list_limit: int = 50

    # Application
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(settings: Settings = None) -> None:
    """Install the root stream handler at the configured level"""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
