"""
OCGP Lobby Client - Client Event Definitions

Event types emitted to the rendering layer, and classification of
raw push-channel frames.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from pydantic import ValidationError

from lobby_client.api.models import ChatMessage, RoomSnapshot

logger = logging.getLogger(__name__)


class ClientEvent(Enum):
    """Events the sync core reports to the rendering layer."""

    VIEW_CHANGED = auto()
    SESSION_CHANGED = auto()
    GAMES_LOADED = auto()
    ROOMS_UPDATED = auto()
    ROOM_UPDATED = auto()
    CHAT_UPDATED = auto()
    TURN_COUNTDOWN = auto()
    ELAPSED_CLOCK = auto()
    LATENCY_UPDATED = auto()
    TRANSPORT_CHANGED = auto()
    # One-shot notifications
    TURN_STARTED = auto()
    MATCH_FINISHED = auto()
    TOAST = auto()


@dataclass
class EventPayload:
    """Wrapper for client event data."""

    event: ClientEvent
    room_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchOutcome:
    """Result of a finished match from the session user's point of view.

    ``result`` is one of ``won``, ``lost``, ``draw`` or ``spectator``.
    """

    result: str
    winner_id: str | None = None
    winner_name: str | None = None
    winner_seat_label: str | None = None


class FrameKind(Enum):
    ROOM_UPDATE = "roomUpdate"
    CHAT_MESSAGE = "chatMessage"


@dataclass(frozen=True)
class PushFrame:
    """A recognized push-channel frame."""

    kind: FrameKind
    room: RoomSnapshot | None = None
    message: ChatMessage | None = None


def classify_frame(raw: str | bytes) -> PushFrame | None:
    """Decode a push frame; None for anything unrecognized or malformed."""
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring non-JSON frame")
        return None
    if not isinstance(data, dict):
        return None

    try:
        kind = FrameKind(data.get("type"))
    except ValueError:
        return None

    try:
        if kind is FrameKind.ROOM_UPDATE:
            return PushFrame(kind, room=RoomSnapshot.model_validate(data.get("room")))
        return PushFrame(kind, message=ChatMessage.model_validate(data.get("message")))
    except ValidationError:
        logger.warning("Ignoring malformed %s frame", kind.value)
        return None
