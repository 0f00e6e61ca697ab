"""
OCGP Lobby Client - Game Adapter Base Classes

Per-game knowledge the sync core must not hold itself: seat labels,
move descriptions, and turning a board click into a move intent.
Adapters never validate rules; the server decides legality.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lobby_client.api.models import RoomSnapshot, RoomStatus


class MoveAction(Enum):
    """What a board interaction resolved to."""

    IGNORED = "ignored"
    SELECTED = "selected"
    SUBMIT = "submit"


@dataclass(frozen=True)
class MoveOutcome:
    """
    Result of feeding one board interaction to an adapter.

    Attributes:
        action: Whether to ignore, keep a selection, or submit a move
        payload: JSON body for the move request when action is SUBMIT
        selection: Cell currently selected (select-then-move games)
    """
    action: MoveAction
    payload: dict[str, Any] = field(default_factory=dict)
    selection: tuple[int, int] | None = None


IGNORED = MoveOutcome(MoveAction.IGNORED)


def is_player_turn(room: RoomSnapshot, user_id: str | None) -> bool:
    """True when the user is seated and the room is waiting on their move."""
    if user_id is None or not room.started:
        return False
    if room.effective_status != RoomStatus.IN_PROGRESS:
        return False
    if user_id not in room.player_ids:
        return False
    return room.current_player_id == user_id


class GameAdapter(ABC):
    """Capability interface implemented once per game type."""

    code: str = ""
    seat_labels: tuple[str, ...] = ()

    def seat_label(self, seat: int | None) -> str | None:
        if seat is None or not 0 <= seat < len(self.seat_labels):
            return None
        return self.seat_labels[seat]

    @abstractmethod
    def describe(self, move: dict[str, Any]) -> str:
        """One-line human-readable description of a recorded move."""

    @abstractmethod
    def apply_move(
        self, room: RoomSnapshot, user_id: str | None, cell: tuple[int, int]
    ) -> MoveOutcome:
        """Turn a click on ``cell`` into a move intent."""

    def reset(self) -> None:
        """Drop any in-progress interaction state."""


class GenericAdapter(GameAdapter):
    """Fallback for game types the client has no board support for."""

    def describe(self, move: dict[str, Any]) -> str:
        return f"{move.get('moveNumber', '?')}. move"

    def apply_move(
        self, room: RoomSnapshot, user_id: str | None, cell: tuple[int, int]
    ) -> MoveOutcome:
        return IGNORED
