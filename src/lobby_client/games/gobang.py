"""
OCGP Lobby Client - Gobang Adapter

Five-in-a-row on a 15x15 board. Seat 0 plays black, seat 1 white.
A click on an empty intersection during the player's turn is a move.
"""

from typing import Any

from lobby_client.api.models import RoomSnapshot
from lobby_client.games.base import (
    IGNORED,
    GameAdapter,
    MoveAction,
    MoveOutcome,
    is_player_turn,
)

EMPTY = 0
DEFAULT_BOARD_SIZE = 15


class GobangAdapter(GameAdapter):
    code = "GOBANG"
    seat_labels = ("Black", "White")

    def describe(self, move: dict[str, Any]) -> str:
        return f"{move.get('moveNumber')}. ({move.get('x')}, {move.get('y')})"

    def apply_move(
        self, room: RoomSnapshot, user_id: str | None, cell: tuple[int, int]
    ) -> MoveOutcome:
        if not is_player_turn(room, user_id) or not room.game_state:
            return IGNORED

        x, y = cell
        size = room.game_state.get("boardSize") or DEFAULT_BOARD_SIZE
        if not (0 <= x < size and 0 <= y < size):
            return IGNORED

        board = room.game_state.get("board") or []
        try:
            occupied = board[x][y] != EMPTY
        except IndexError:
            occupied = False
        if occupied:
            return IGNORED

        return MoveOutcome(MoveAction.SUBMIT, payload={"x": x, "y": y})
