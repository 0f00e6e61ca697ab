"""
OCGP Lobby Client API Layer.

HTTP request primitive, endpoint wrappers, and wire models.
"""

from lobby_client.api.client import ApiClient
from lobby_client.api.errors import ApiError
from lobby_client.api.models import (
    ChatMessage,
    GameInfo,
    RoomSnapshot,
    RoomStatus,
    Session,
    User,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "ChatMessage",
    "GameInfo",
    "RoomSnapshot",
    "RoomStatus",
    "Session",
    "User",
]
