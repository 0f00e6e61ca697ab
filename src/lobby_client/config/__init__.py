"""
OCGP Lobby Client Configuration.

Environment variables, settings, and logging configuration.
"""

from lobby_client.config.settings import Settings, configure_logging, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
