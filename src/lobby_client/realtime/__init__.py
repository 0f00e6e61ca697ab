"""
OCGP Lobby Client Real-time Sync.

Timer primitives, the push channel, and push/poll failover for rooms.
"""

from lobby_client.realtime.channel import ChannelError, PushChannel
from lobby_client.realtime.events import (
    ClientEvent,
    EventPayload,
    MatchOutcome,
    PushFrame,
    classify_frame,
)
from lobby_client.realtime.sync_manager import (
    LatencyProbe,
    LobbyPoller,
    RoomSync,
    TransportState,
)
from lobby_client.realtime.timers import LoopScheduler, Scheduler

__all__ = [
    "ChannelError",
    "ClientEvent",
    "EventPayload",
    "LatencyProbe",
    "LobbyPoller",
    "LoopScheduler",
    "MatchOutcome",
    "PushChannel",
    "PushFrame",
    "RoomSync",
    "Scheduler",
    "TransportState",
    "classify_frame",
]
