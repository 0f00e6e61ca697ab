"""
OCGP Lobby Client Game Adapters.

Board-specific interpretation of a room snapshot, one adapter per game
type. The sync core only ever talks to the GameAdapter interface.
"""

from lobby_client.games.base import (
    GameAdapter,
    GenericAdapter,
    MoveAction,
    MoveOutcome,
    is_player_turn,
)
from lobby_client.games.chinese_chess import ChineseChessAdapter
from lobby_client.games.gobang import GobangAdapter

_ADAPTERS: dict[str, type[GameAdapter]] = {
    GobangAdapter.code: GobangAdapter,
    ChineseChessAdapter.code: ChineseChessAdapter,
}


def create_adapter(game_type: str | None) -> GameAdapter:
    """Fresh adapter for a game type; unknown types get GenericAdapter."""
    adapter_cls = _ADAPTERS.get((game_type or "").upper(), GenericAdapter)
    return adapter_cls()


__all__ = [
    # Interface
    "GameAdapter",
    "MoveAction",
    "MoveOutcome",
    "create_adapter",
    "is_player_turn",
    # Adapters
    "ChineseChessAdapter",
    "GenericAdapter",
    "GobangAdapter",
]
