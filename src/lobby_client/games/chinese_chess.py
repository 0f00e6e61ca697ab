"""
OCGP Lobby Client - Chinese Chess Adapter

9x10 board; seat 0 plays red, seat 1 black. Moves are built in two
clicks: select one of your own pieces, then click the destination.
Clicking another own piece moves the selection instead.
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

RED = "RED"
BLACK = "BLACK"

PIECE_NAMES = {
    "GENERAL": "General",
    "ADVISOR": "Advisor",
    "ELEPHANT": "Elephant",
    "HORSE": "Horse",
    "CHARIOT": "Chariot",
    "CANNON": "Cannon",
    "SOLDIER": "Soldier",
}

# Red and black draw these two pieces with different characters
RED_PIECE_NAMES = {
    "ELEPHANT": "Minister",
    "SOLDIER": "Soldier",
}
BLACK_PIECE_NAMES = {
    "ELEPHANT": "Elephant",
    "SOLDIER": "Pawn",
}


def piece_name(piece_type: str | None, color: str | None = None) -> str:
    piece_type = piece_type or ""
    by_color = {RED: RED_PIECE_NAMES, BLACK: BLACK_PIECE_NAMES}.get(color or "", {})
    return by_color.get(piece_type) or PIECE_NAMES.get(piece_type, "?")


class ChineseChessAdapter(GameAdapter):
    code = "CHINESE_CHESS"
    seat_labels = ("Red", "Black")

    def __init__(self) -> None:
        self.selection: tuple[int, int] | None = None

    def reset(self) -> None:
        self.selection = None

    def describe(self, move: dict[str, Any]) -> str:
        text = (
            f"{move.get('moveNumber')}. "
            f"({move.get('fromRow')},{move.get('fromCol')}) -> "
            f"({move.get('toRow')},{move.get('toCol')})"
        )
        if move.get("captured"):
            text += f" captures {piece_name(move['captured'], move.get('capturedColor'))}"
        return text

    def apply_move(
        self, room: RoomSnapshot, user_id: str | None, cell: tuple[int, int]
    ) -> MoveOutcome:
        seat = room.seat_of(user_id)
        if seat is None or not is_player_turn(room, user_id) or not room.game_state:
            return IGNORED

        own_color = RED if seat == 0 else BLACK
        row, col = cell
        piece = _piece_at(room.game_state.get("board") or [], row, col)
        is_own_piece = bool(piece) and piece.get("color") == own_color

        if self.selection is None:
            if is_own_piece:
                self.selection = cell
                return MoveOutcome(MoveAction.SELECTED, selection=cell)
            return IGNORED

        if is_own_piece:
            self.selection = cell
            return MoveOutcome(MoveAction.SELECTED, selection=cell)

        from_row, from_col = self.selection
        self.selection = None
        return MoveOutcome(
            MoveAction.SUBMIT,
            payload={
                "fromRow": from_row,
                "fromCol": from_col,
                "toRow": row,
                "toCol": col,
            },
        )


def _piece_at(board: list, row: int, col: int) -> dict[str, Any] | None:
    if 0 <= row < len(board) and 0 <= col < len(board[row]):
        return board[row][col]
    return None
