"""Tests for lobby_client/realtime/sync_manager.py — push/poll failover, lobby poller, latency probe."""

import asyncio
from unittest.mock import MagicMock

import pytest

from lobby_client.api.errors import ApiError
from lobby_client.realtime.events import FrameKind, PushFrame
from lobby_client.realtime.sync_manager import (
    LatencyProbe,
    LobbyPoller,
    RoomSync,
    TransportState,
)
from lobby_client.state.chat import ChatSync


class Recorder:
    def __init__(self):
        self.snapshots = []
        self.chat = []
        self.lost = []
        self.transport = []
        self._seq = 0

    def sequencer(self):
        self._seq += 1
        return self._seq


@pytest.fixture
def rec():
    return Recorder()


@pytest.fixture
def sync(api, scheduler, channel_factory, rec):
    return RoomSync(
        api,
        scheduler,
        "room-1",
        chat=ChatSync(api),
        channel_factory=channel_factory,
        sequencer=rec.sequencer,
        on_snapshot=lambda snap, seq: rec.snapshots.append((snap, seq)),
        on_chat=rec.chat.extend,
        on_room_lost=rec.lost.append,
        on_transport=lambda state, reason: rec.transport.append((state, reason)),
        poll_interval=2.5,
    )


# ── Failover state machine ─────────────────────────────────────────────

class TestRoomSyncFailover:
    def test_push_connects(self, sync, channel_factory, rec):
        asyncio.run(sync.start())
        assert sync.state is TransportState.PUSH_CONNECTED
        assert [s for s, _ in rec.transport] == [
            TransportState.CONNECTING, TransportState.PUSH_CONNECTED,
        ]
        assert channel_factory.last.connected

    def test_connect_failure_falls_back_to_polling(self, sync, channel_factory, scheduler, rec):
        channel_factory.fail = True
        asyncio.run(sync.start())

        assert sync.state is TransportState.POLLING
        assert rec.transport[-1][1] is not None
        assert len(scheduler.active_timers) == 1

    def test_factory_exception_falls_back(self, api, scheduler, rec):
        def broken_factory(room_id, **callbacks):
            raise RuntimeError("no websocket support")

        sync = RoomSync(
            api, scheduler, "room-1",
            chat=ChatSync(api),
            channel_factory=broken_factory,
            sequencer=rec.sequencer,
            on_snapshot=lambda *a: None,
            on_chat=lambda m: None,
            on_room_lost=lambda e: None,
            on_transport=lambda *a: None,
        )
        asyncio.run(sync.start())
        assert sync.state is TransportState.POLLING

    def test_channel_error_switches_within_one_tick(self, sync, channel_factory, scheduler, api):
        asyncio.run(sync.start())
        channel = channel_factory.last

        channel.on_error(ConnectionResetError("reset"))

        assert sync.state is TransportState.POLLING
        assert channel.closed
        assert len(scheduler.active_timers) == 1
        api.get_room.assert_not_called()

    def test_channel_close_switches_to_polling(self, sync, channel_factory):
        asyncio.run(sync.start())
        channel_factory.last.on_close()
        assert sync.state is TransportState.POLLING

    def test_push_never_reconnected(self, sync, channel_factory, scheduler, api, make_room):
        api.get_room.return_value = make_room()
        asyncio.run(sync.start())
        channel_factory.last.on_error(OSError("gone"))

        async def poll_a_while():
            for _ in range(4):
                scheduler.advance(2.5)
                await scheduler.drain()

        asyncio.run(poll_a_while())
        assert len(channel_factory.channels) == 1

    def test_repeated_failure_signals_start_one_poller(self, sync, channel_factory, scheduler):
        asyncio.run(sync.start())
        channel = channel_factory.last
        channel.on_error(OSError("x"))
        channel.on_close()
        assert len(scheduler.active_timers) == 1

    def test_stop_tears_everything_down(self, sync, channel_factory, scheduler):
        channel_factory.fail = True
        asyncio.run(sync.start())
        sync.stop()

        assert sync.state is TransportState.IDLE
        assert scheduler.active_timers == []
        sync.stop()

    def test_stop_closes_push_channel(self, sync, channel_factory):
        asyncio.run(sync.start())
        sync.stop()
        assert channel_factory.last.closed

    def test_failure_after_stop_is_ignored(self, sync, channel_factory, scheduler):
        asyncio.run(sync.start())
        channel = channel_factory.last
        sync.stop()
        channel.on_error(OSError("late"))
        assert sync.state is TransportState.IDLE
        assert scheduler.active_timers == []


# ── Push frames ────────────────────────────────────────────────────────

class TestRoomSyncFrames:
    def test_room_update_tagged_on_receipt(self, sync, channel_factory, rec, make_room):
        asyncio.run(sync.start())
        room = make_room()
        channel_factory.last.on_message(PushFrame(FrameKind.ROOM_UPDATE, room=room))
        assert rec.snapshots == [(room, 1)]

    def test_other_room_ignored(self, sync, channel_factory, rec, make_room):
        asyncio.run(sync.start())
        channel_factory.last.on_message(PushFrame(FrameKind.ROOM_UPDATE, room=make_room(id="room-2")))
        assert rec.snapshots == []

    def test_chat_message_appended_once(self, sync, channel_factory, rec, make_message):
        asyncio.run(sync.start())
        frame = PushFrame(FrameKind.CHAT_MESSAGE, message=make_message(11))
        channel_factory.last.on_message(frame)
        channel_factory.last.on_message(frame)
        assert [m.id for m in rec.chat] == [11]


# ── Polling ────────────────────────────────────────────────────────────

class TestRoomSyncPolling:
    def test_tick_fetches_snapshot_and_chat(self, sync, channel_factory, scheduler, api, rec, make_room, make_message):
        channel_factory.fail = True
        room = make_room()
        api.get_room.return_value = room
        api.list_chat.return_value = [make_message(5)]

        async def scenario():
            await sync.start()
            scheduler.advance(2.5)
            await scheduler.drain()

        asyncio.run(scenario())

        api.get_room.assert_awaited_once_with("room-1")
        api.list_chat.assert_awaited_once_with("room-1", 0)
        assert rec.snapshots == [(room, 1)]
        assert [m.id for m in rec.chat] == [5]

    def test_nothing_before_first_interval(self, sync, channel_factory, scheduler, api):
        channel_factory.fail = True

        async def scenario():
            await sync.start()
            scheduler.advance(2.4)
            await scheduler.drain()

        asyncio.run(scenario())
        api.get_room.assert_not_called()

    def test_fetch_failure_reports_room_lost(self, sync, channel_factory, scheduler, api, rec):
        channel_factory.fail = True
        api.get_room.side_effect = ApiError("Network error")

        async def scenario():
            await sync.start()
            scheduler.advance(2.5)
            await scheduler.drain()

        asyncio.run(scenario())
        assert len(rec.lost) == 1
        assert rec.snapshots == []

    def test_chat_failure_also_reports_room_lost(self, sync, channel_factory, scheduler, api, rec, make_room):
        channel_factory.fail = True
        api.get_room.return_value = make_room()
        api.list_chat.side_effect = ApiError("Room not found", 404)

        async def scenario():
            await sync.start()
            scheduler.advance(2.5)
            await scheduler.drain()

        asyncio.run(scenario())
        assert len(rec.lost) == 1

    def test_response_after_stop_dropped(self, sync, channel_factory, scheduler, api, rec, make_room):
        channel_factory.fail = True
        api.get_room.return_value = make_room()

        async def scenario():
            await sync.start()
            scheduler.advance(2.5)
            sync.stop()
            await scheduler.drain()

        asyncio.run(scenario())
        assert rec.snapshots == []


# ── Lobby poller ───────────────────────────────────────────────────────

class TestLobbyPoller:
    def test_refreshes_on_interval(self, api, scheduler, make_room):
        rooms = [make_room()]
        api.list_rooms.return_value = rooms
        seen = []
        poller = LobbyPoller(api, scheduler, on_rooms=seen.append, on_error=MagicMock())

        async def scenario():
            poller.start()
            scheduler.advance(5.0)
            await scheduler.drain()

        asyncio.run(scenario())
        assert seen == [rooms, rooms]

    def test_start_is_idempotent(self, api, scheduler):
        poller = LobbyPoller(api, scheduler, on_rooms=MagicMock(), on_error=MagicMock())
        poller.start()
        poller.start()
        assert len(scheduler.active_timers) == 1

    def test_stopped_poller_drops_result(self, api, scheduler):
        on_rooms = MagicMock()
        poller = LobbyPoller(api, scheduler, on_rooms=on_rooms, on_error=MagicMock())

        async def scenario():
            poller.start()
            scheduler.advance(2.5)
            poller.stop()
            await scheduler.drain()

        asyncio.run(scenario())
        on_rooms.assert_not_called()

    def test_restarted_poller_drops_earlier_tick(self, api, scheduler):
        on_rooms = MagicMock()
        poller = LobbyPoller(api, scheduler, on_rooms=on_rooms, on_error=MagicMock())

        async def scenario():
            poller.start()
            scheduler.advance(2.5)
            poller.stop()
            poller.start()
            await scheduler.drain()

        asyncio.run(scenario())
        on_rooms.assert_not_called()

    def test_error_reported(self, api, scheduler):
        api.list_rooms.side_effect = ApiError("HTTP 500", 500)
        on_error = MagicMock()
        poller = LobbyPoller(api, scheduler, on_rooms=MagicMock(), on_error=on_error)
        asyncio.run(poller.refresh())
        on_error.assert_called_once()


# ── Latency probe ──────────────────────────────────────────────────────

class TestLatencyProbe:
    def test_records_latency(self, api, scheduler):
        seen = []
        probe = LatencyProbe(api, scheduler, on_latency=seen.append, interval=4.0)

        async def scenario():
            probe.start()
            scheduler.advance(4.0)
            await scheduler.drain()

        asyncio.run(scenario())
        assert len(seen) == 1
        assert probe.last_latency_ms is not None and probe.last_latency_ms >= 0

    def test_failure_keeps_last_value(self, api, scheduler):
        api.ping.side_effect = ApiError("Network error")
        probe = LatencyProbe(api, scheduler, on_latency=MagicMock())
        probe.start()
        asyncio.run(probe.probe())
        assert probe.last_latency_ms is None

    def test_probe_from_stopped_timer_dropped(self, api, scheduler):
        on_latency = MagicMock()
        probe = LatencyProbe(api, scheduler, on_latency=on_latency)

        async def scenario():
            probe.start()
            scheduler.advance(4.0)
            probe.stop()
            probe.start()
            await scheduler.drain()

        asyncio.run(scenario())
        on_latency.assert_not_called()
        assert probe.last_latency_ms is None

    def test_stop_cancels(self, api, scheduler):
        probe = LatencyProbe(api, scheduler, on_latency=MagicMock())
        probe.start()
        probe.stop()
        assert not probe.running
        assert scheduler.active_timers == []
