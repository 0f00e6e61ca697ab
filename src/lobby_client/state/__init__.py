"""
OCGP Lobby Client State.

Room snapshot store with edge detection, chat cursor sync, and the
countdown/elapsed timer reconciler.
"""

from lobby_client.state.chat import ChatLog, ChatSync
from lobby_client.state.room_store import (
    ApplyResult,
    PreviousStatusMemory,
    RoomStore,
    describe_status,
    match_outcome,
)
from lobby_client.state.timers import BLANK, TimerReconciler

__all__ = [
    "ApplyResult",
    "BLANK",
    "ChatLog",
    "ChatSync",
    "PreviousStatusMemory",
    "RoomStore",
    "TimerReconciler",
    "describe_status",
    "match_outcome",
]
