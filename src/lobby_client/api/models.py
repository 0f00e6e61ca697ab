"""
OCGP Lobby Client - Wire Models

Pydantic models that mirror the JSON payloads of the lobby server.
The server speaks camelCase; attributes are snake_case with aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
}


class RoomStatus(str, Enum):
    """Room or match status as reported by the server."""

    WAITING = "WAITING"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


class User(BaseModel):
    """Public user record."""

    id: str
    username: str

    model_config = _WIRE_CONFIG


class Session(BaseModel):
    """Authenticated session: credential plus the user it belongs to."""

    token: str
    user: User

    model_config = _WIRE_CONFIG


class GameInfo(BaseModel):
    """Entry of the `/games` catalog."""

    code: str
    name: str
    description: str = ""

    model_config = _WIRE_CONFIG


class RoomSnapshot(BaseModel):
    """Full state of one room. Replaced wholesale on every update."""

    id: str
    name: str
    game_type: str
    game_type_name: str | None = None
    is_private: bool = Field(default=False, alias="private")
    invite_code: str | None = None
    started: bool = False
    status: str = RoomStatus.WAITING.value
    host_user_id: str | None = None
    player_ids: tuple[str, ...] = ()
    players: tuple[User, ...] = ()
    current_player_id: str | None = None
    turn_deadline: datetime | None = None
    started_at: datetime | None = None
    game_state: dict[str, Any] | None = None
    winner_id: str | None = None
    draw: bool = False

    model_config = _WIRE_CONFIG

    @property
    def effective_status(self) -> str:
        """Game-specific status when the blob carries one, else room status."""
        if self.game_state and isinstance(self.game_state.get("status"), str):
            return self.game_state["status"]
        return self.status

    @property
    def resolved_winner_id(self) -> str | None:
        if self.winner_id is not None:
            return self.winner_id
        if self.game_state:
            return self.game_state.get("winnerId")
        return None

    @property
    def is_draw(self) -> bool:
        if self.draw:
            return True
        return bool(self.game_state and self.game_state.get("draw"))

    @property
    def moves(self) -> list[dict[str, Any]]:
        if not self.game_state:
            return []
        return list(self.game_state.get("moves") or [])

    def seat_of(self, user_id: str | None) -> int | None:
        """Seat index of a user (0 = first player), or None if not seated."""
        if user_id is None or user_id not in self.player_ids:
            return None
        return self.player_ids.index(user_id)

    def username_of(self, user_id: str | None) -> str | None:
        for player in self.players:
            if player.id == user_id:
                return player.username
        return None


class ChatMessage(BaseModel):
    """One entry of a room's append-only chat log."""

    id: int
    user_id: str
    content: str
    username: str | None = None
    created_at: datetime | None = None

    model_config = _WIRE_CONFIG
