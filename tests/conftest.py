"""
OCGP Lobby Client - Test Configuration and Fixtures

Deterministic scheduler, fake push channels, a mocked API client and
room snapshot builders shared by all test modules.
"""

from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from lobby_client.api.client import ApiClient
from lobby_client.api.models import ChatMessage, RoomSnapshot
from lobby_client.realtime.channel import ChannelError

START_TIME = 1_700_000_000.0


# =============================================================================
# SCHEDULER
# =============================================================================

class ManualTimer:
    def __init__(self, origin: float, delay: float, interval: float | None, callback: Callable[[], Any]):
        self.origin = origin
        self.delay = delay
        self.interval = interval
        self.callback = callback
        self.fired = 0
        self.active = True

    @property
    def due(self) -> float:
        # Computed from the origin so repeated ticks do not accumulate float error
        return self.origin + self.delay + self.fired * (self.interval or 0.0)

    def cancel(self) -> None:
        self.active = False


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls ``advance``.

    Spawned coroutines are queued and run by ``drain``.
    """

    def __init__(self, start: float = START_TIME) -> None:
        self.current = start
        self.timers: list[ManualTimer] = []
        self.pending: list[Any] = []

    def now(self) -> float:
        return self.current

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ManualTimer:
        timer = ManualTimer(self.current, delay, None, callback)
        self.timers.append(timer)
        return timer

    def call_every(self, interval: float, callback: Callable[[], Any]) -> ManualTimer:
        timer = ManualTimer(self.current, interval, interval, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, coro: Any) -> Any:
        self.pending.append(coro)
        return coro

    @property
    def active_timers(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.active]

    def advance(self, seconds: float) -> None:
        target = self.current + seconds
        while True:
            due = [t for t in self.timers if t.active and t.due <= target + 1e-6]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.current = max(self.current, timer.due)
            timer.fired += 1
            if timer.interval is None:
                timer.active = False
            timer.callback()
        self.current = target

    async def drain(self) -> None:
        while self.pending:
            await self.pending.pop(0)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


# =============================================================================
# PUSH CHANNEL
# =============================================================================

class FakeChannel:
    def __init__(self, room_id: str, *, fail: bool, on_message, on_close, on_error):
        self.room_id = room_id
        self.fail = fail
        self.on_message = on_message
        self.on_close = on_close
        self.on_error = on_error
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        if self.fail:
            raise ChannelError("connection refused")
        self.connected = True

    def close(self) -> None:
        self.closed = True


class FakeChannelFactory:
    """Stands in for PushChannel construction; records every channel built."""

    def __init__(self) -> None:
        self.channels: list[FakeChannel] = []
        self.fail = False

    def __call__(self, room_id: str, **callbacks: Any) -> FakeChannel:
        channel = FakeChannel(room_id, fail=self.fail, **callbacks)
        self.channels.append(channel)
        return channel

    @property
    def last(self) -> FakeChannel:
        return self.channels[-1]


@pytest.fixture
def channel_factory() -> FakeChannelFactory:
    return FakeChannelFactory()


# =============================================================================
# API AND SNAPSHOTS
# =============================================================================

@pytest.fixture
def api() -> MagicMock:
    """ApiClient mock; every endpoint wrapper is an AsyncMock."""
    client = MagicMock(spec=ApiClient)
    client.list_chat.return_value = []
    client.list_rooms.return_value = []
    client.list_games.return_value = []
    return client


def build_room(**overrides: Any) -> RoomSnapshot:
    """Room snapshot in wire (camelCase) form with overrides applied."""
    data: dict[str, Any] = {
        "id": "room-1",
        "name": "Friendly match",
        "gameType": "GOBANG",
        "started": False,
        "status": "WAITING",
        "hostUserId": "alice-id",
        "playerIds": ["alice-id", "bob-id"],
        "players": [
            {"id": "alice-id", "username": "alice"},
            {"id": "bob-id", "username": "bob"},
        ],
        "currentPlayerId": None,
        "turnDeadline": None,
        "startedAt": None,
        "gameState": None,
    }
    data.update(overrides)
    return RoomSnapshot.model_validate(data)


def build_in_progress(current: str, **overrides: Any) -> RoomSnapshot:
    fields = {"started": True, "status": "IN_PROGRESS", "currentPlayerId": current}
    fields.update(overrides)
    return build_room(**fields)


def build_message(message_id: int, content: str = "hi", user_id: str = "bob-id") -> ChatMessage:
    return ChatMessage(id=message_id, user_id=user_id, content=content)


@pytest.fixture
def make_room() -> Callable[..., RoomSnapshot]:
    return build_room


@pytest.fixture
def make_in_progress() -> Callable[..., RoomSnapshot]:
    return build_in_progress


@pytest.fixture
def make_message() -> Callable[..., ChatMessage]:
    return build_message
