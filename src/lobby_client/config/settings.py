"""
OCGP Lobby Client - Application Settings

Loads configuration from environment variables using Pydantic Settings.
Every variable is prefixed with ``OCGP_`` (e.g. ``OCGP_POLL_INTERVAL``).
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend endpoints
    api_base_url: str = "http://localhost:8080"
    ws_url: str = "ws://localhost:8081"
    request_timeout: float = 5.0

    # Sync intervals (seconds)
    poll_interval: float = 2.5
    latency_interval: float = 4.0
    turn_tick: float = 0.2
    elapsed_tick: float = 1.0
    estimated_turn_seconds: float = 15.0

    # Application
    debug: bool = False
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "OCGP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached singleton settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=_LOG_FORMAT)
