"""
OCGP Lobby Client - Realtime Sync Manager

Transport failover for an open room (push channel first, polling
fallback afterwards), plus the lobby room-list poller and the latency
probe. Push is never retried within one room visit: once the channel
fails, the room is polled until the visit ends.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from lobby_client.api.client import ApiClient
from lobby_client.api.errors import ApiError
from lobby_client.api.models import ChatMessage, RoomSnapshot
from lobby_client.realtime.channel import PushChannel
from lobby_client.realtime.events import FrameKind, PushFrame
from lobby_client.realtime.timers import Scheduler, TimerHandle
from lobby_client.state.chat import ChatSync

logger = logging.getLogger(__name__)

ChannelFactory = Callable[..., PushChannel]


class TransportState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    PUSH_CONNECTED = "push_connected"
    POLLING = "polling"


class RoomSync:
    """Delivers snapshots and chat for one room visit.

    ``sequencer`` issues the sequence number attached to each snapshot:
    at request time for polls, at receipt time for push frames.
    """

    def __init__(
        self,
        api: ApiClient,
        scheduler: Scheduler,
        room_id: str,
        *,
        chat: ChatSync,
        channel_factory: ChannelFactory,
        sequencer: Callable[[], int],
        on_snapshot: Callable[[RoomSnapshot, int], None],
        on_chat: Callable[[list[ChatMessage]], None],
        on_room_lost: Callable[[ApiError], None],
        on_transport: Callable[[TransportState, str | None], None],
        poll_interval: float = 2.5,
    ) -> None:
        self.room_id = room_id
        self._api = api
        self._scheduler = scheduler
        self._chat = chat
        self._channel_factory = channel_factory
        self._sequencer = sequencer
        self._on_snapshot = on_snapshot
        self._on_chat = on_chat
        self._on_room_lost = on_room_lost
        self._on_transport = on_transport
        self._poll_interval = poll_interval

        self.state = TransportState.IDLE
        self._active = False
        self._channel: PushChannel | None = None
        self._poll_timer: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> None:
        """Try the push channel; fall back to polling if it cannot open."""
        self._active = True
        self._set_state(TransportState.CONNECTING)
        try:
            channel = self._channel_factory(
                self.room_id,
                on_message=self._handle_frame,
                on_close=lambda: self._handle_channel_lost("Live connection closed"),
                on_error=lambda exc: self._handle_channel_lost("Live connection error"),
            )
            self._channel = channel
            await channel.connect()
        except Exception as exc:
            if not self._active:
                return
            logger.warning("Push channel unavailable for room %s: %s", self.room_id, exc)
            self._start_polling("Live updates unavailable, polling instead")
            return

        if not self._active:
            channel.close()
            return
        self._set_state(TransportState.PUSH_CONNECTED)

    def stop(self) -> None:
        """Close the channel and cancel polling. Idempotent."""
        self._active = False
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        self.state = TransportState.IDLE

    # -- Push path -------------------------------------------------------

    def _handle_frame(self, frame: PushFrame) -> None:
        if not self._active:
            return
        if frame.kind is FrameKind.ROOM_UPDATE:
            if frame.room.id != self.room_id:
                return
            self._on_snapshot(frame.room, self._sequencer())
        elif frame.kind is FrameKind.CHAT_MESSAGE:
            if self._chat.log.append(frame.message):
                self._on_chat([frame.message])

    def _handle_channel_lost(self, reason: str) -> None:
        if not self._active or self.state is not TransportState.PUSH_CONNECTED:
            return
        logger.warning("%s for room %s; switching to polling", reason, self.room_id)
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        self._start_polling(f"{reason}, polling instead")

    # -- Polling fallback ------------------------------------------------

    def _start_polling(self, reason: str) -> None:
        if self._poll_timer is not None:
            return
        self._channel = None
        self._poll_timer = self._scheduler.call_every(self._poll_interval, self._poll_tick)
        self._set_state(TransportState.POLLING, reason)
        logger.info("Polling room %s every %.1fs", self.room_id, self._poll_interval)

    def _poll_tick(self) -> None:
        if self._active:
            self._scheduler.spawn(self.poll_once())

    async def poll_once(self) -> None:
        """Fetch the snapshot and new chat; a failure means the room is gone."""
        sequence = self._sequencer()
        try:
            snapshot = await self._api.get_room(self.room_id)
            if not self._active:
                return
            self._on_snapshot(snapshot, sequence)
            added = await self._chat.load_chat(
                self.room_id, still_current=lambda: self._active
            )
        except ApiError as exc:
            if self._active:
                logger.warning("Polling failed for room %s: %s", self.room_id, exc.message)
                self._on_room_lost(exc)
            return
        if added and self._active:
            self._on_chat(added)

    def _set_state(self, state: TransportState, reason: str | None = None) -> None:
        self.state = state
        self._on_transport(state, reason)


class LobbyPoller:
    """Refreshes the public room list while the lobby is shown."""

    def __init__(
        self,
        api: ApiClient,
        scheduler: Scheduler,
        *,
        on_rooms: Callable[[list[RoomSnapshot]], None],
        on_error: Callable[[ApiError], None],
        interval: float = 2.5,
    ) -> None:
        self._api = api
        self._scheduler = scheduler
        self._on_rooms = on_rooms
        self._on_error = on_error
        self._interval = interval
        self._timer: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is not None:
            return
        self._timer = self._scheduler.call_every(self._interval, self._tick)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._scheduler.spawn(self.refresh(self._timer))

    async def refresh(self, timer: TimerHandle | None = None) -> None:
        """Fetch the room list. A tick passes its own timer; the result is
        dropped unless that timer is still the live one."""
        if timer is None:
            timer = self._timer
        try:
            rooms = await self._api.list_rooms()
        except ApiError as exc:
            if self._timer is timer:
                self._on_error(exc)
            return
        if self._timer is not timer:
            logger.debug("Dropping room list from a stopped poller")
            return
        self._on_rooms(rooms)


class LatencyProbe:
    """Measures round-trip time while a session exists."""

    def __init__(
        self,
        api: ApiClient,
        scheduler: Scheduler,
        *,
        on_latency: Callable[[float], None],
        interval: float = 4.0,
    ) -> None:
        self._api = api
        self._scheduler = scheduler
        self._on_latency = on_latency
        self._interval = interval
        self._timer: TimerHandle | None = None
        self.last_latency_ms: float | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        if self._timer is None:
            self._timer = self._scheduler.call_every(self._interval, self._tick)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._scheduler.spawn(self.probe(self._timer))

    async def probe(self, timer: TimerHandle | None = None) -> None:
        if timer is None:
            timer = self._timer
        started = time.perf_counter()
        try:
            await self._api.ping()
        except ApiError as exc:
            logger.debug("Latency probe failed: %s", exc.message)
            return
        if self._timer is None or self._timer is not timer:
            return
        self.last_latency_ms = (time.perf_counter() - started) * 1000
        self._on_latency(self.last_latency_ms)
