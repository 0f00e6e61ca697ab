"""
OCGP Lobby Client - Context Lifecycle

LobbyController switches between the three mutually exclusive
contexts (auth, lobby, room). Each entry point first tears down every
timer and channel of the outgoing context, then starts its own.

Teardown bumps a generation counter. Every asynchronous completion
checks the generation it was issued under and is dropped if a context
switch happened while it was in flight.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from lobby_client.api.client import ApiClient
from lobby_client.api.errors import ApiError
from lobby_client.api.models import ChatMessage, GameInfo, RoomSnapshot, Session
from lobby_client.config.settings import Settings, get_settings
from lobby_client.games import MoveAction, MoveOutcome
from lobby_client.realtime.channel import PushChannel
from lobby_client.realtime.events import ClientEvent, EventPayload
from lobby_client.realtime.sync_manager import (
    LatencyProbe,
    LobbyPoller,
    RoomSync,
    TransportState,
)
from lobby_client.realtime.timers import LoopScheduler, Scheduler
from lobby_client.state.chat import ChatLog, ChatSync
from lobby_client.state.room_store import RoomStore, describe_status
from lobby_client.state.timers import TimerReconciler
from lobby_client.storage import SessionStore

logger = logging.getLogger(__name__)

ROOM_LOST_NOTICE = "The room no longer exists"


class View(Enum):
    AUTH = "auth"
    LOBBY = "lobby"
    ROOM = "room"


class LobbyController:
    """Owns the session, the active context, and everything it scheduled.

    All UI output goes through ``on_event``; the controller never calls
    a renderer directly.
    """

    def __init__(
        self,
        api: ApiClient,
        sessions: SessionStore,
        *,
        on_event: Callable[[EventPayload], None],
        scheduler: Scheduler | None = None,
        settings: Settings | None = None,
        channel_factory: Callable[..., PushChannel] | None = None,
    ) -> None:
        self._api = api
        self._sessions = sessions
        self._on_event = on_event
        self._scheduler = scheduler or LoopScheduler()
        self._settings = settings or get_settings()
        self._channel_factory = channel_factory or self._make_channel

        self.session: Session | None = None
        self.view: View | None = None
        self.games: list[GameInfo] = []
        self.rooms: list[RoomSnapshot] = []

        self._generation = 0
        self._room_id: str | None = None
        self._store: RoomStore | None = None
        self._chat = ChatSync(api, ChatLog())
        self._room_sync: RoomSync | None = None
        self._timers = TimerReconciler(
            self._scheduler,
            on_countdown=lambda text: self._emit(ClientEvent.TURN_COUNTDOWN, text=text),
            on_elapsed=lambda text: self._emit(ClientEvent.ELAPSED_CLOCK, text=text),
            turn_tick=self._settings.turn_tick,
            elapsed_tick=self._settings.elapsed_tick,
            estimated_turn_seconds=self._settings.estimated_turn_seconds,
        )
        self._lobby_poller = LobbyPoller(
            api,
            self._scheduler,
            on_rooms=self._set_rooms,
            on_error=lambda exc: self._toast(exc.message or "Failed to load rooms", True),
            interval=self._settings.poll_interval,
        )
        self._latency = LatencyProbe(
            api,
            self._scheduler,
            on_latency=lambda ms: self._emit(ClientEvent.LATENCY_UPDATED, latency_ms=ms),
            interval=self._settings.latency_interval,
        )

    # -- Read-only views for the renderer --------------------------------

    @property
    def user_id(self) -> str | None:
        return self.session.user.id if self.session else None

    @property
    def room(self) -> RoomSnapshot | None:
        return self._store.snapshot if self._store else None

    @property
    def chat_messages(self) -> tuple[ChatMessage, ...]:
        return self._chat.log.messages

    @property
    def countdown_text(self) -> str:
        return self._timers.countdown

    @property
    def elapsed_text(self) -> str:
        return self._timers.elapsed

    @property
    def transport_state(self) -> TransportState:
        return self._room_sync.state if self._room_sync else TransportState.IDLE

    @property
    def latency_ms(self) -> float | None:
        return self._latency.last_latency_ms

    @property
    def lobby_polling(self) -> bool:
        return self._lobby_poller.running

    @property
    def generation(self) -> int:
        return self._generation

    # -- Startup and session ---------------------------------------------

    async def start(self) -> None:
        """Restore a stored session if there is one, else show auth."""
        session = self._sessions.load()
        if session is None:
            self.enter_unauthenticated()
            return
        self._establish(session, persist=False)
        await self.enter_lobby()

    async def login(self, username: str, password: str) -> bool:
        return await self._authenticate(self._api.login, username, password, "Logged in")

    async def register(self, username: str, password: str) -> bool:
        return await self._authenticate(
            self._api.register, username, password, "Registered and logged in"
        )

    async def _authenticate(self, call, username: str, password: str, notice: str) -> bool:
        username, password = username.strip(), password.strip()
        if not username or not password:
            return False
        try:
            session = await call(username, password)
        except ApiError as exc:
            self._toast(exc.message or "Authentication failed", True)
            return False
        self._establish(session)
        self._toast(notice)
        await self.enter_lobby()
        return True

    def logout(self) -> None:
        self._latency.stop()
        self._sessions.clear()
        self.session = None
        self._api.token = None
        self._emit(ClientEvent.SESSION_CHANGED, user=None)
        self.enter_unauthenticated()

    def _establish(self, session: Session, *, persist: bool = True) -> None:
        self.session = session
        self._api.token = session.token
        if persist:
            self._sessions.save(session)
        self._latency.start()
        self._emit(ClientEvent.SESSION_CHANGED, user=session.user)

    # -- Contexts --------------------------------------------------------

    def _teardown(self) -> None:
        """Cancel every timer and channel of the active context."""
        self._generation += 1
        if self._room_sync is not None:
            self._room_sync.stop()
            self._room_sync = None
        self._lobby_poller.stop()
        self._timers.stop()

    def _discard_room(self) -> None:
        if self._store is not None and self._store.adapter is not None:
            self._store.adapter.reset()
        self._room_id = None
        self._store = None
        self._chat.log.clear()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _guarded(self, generation: int, callback: Callable[..., Any]) -> Callable[..., Any]:
        def wrapper(*args: Any) -> Any:
            if not self._is_current(generation):
                logger.debug("Dropping callback from generation %d", generation)
                return None
            return callback(*args)
        return wrapper

    def _show(self, view: View) -> None:
        self.view = view
        logger.info("Entered %s context", view.value)
        self._emit(ClientEvent.VIEW_CHANGED, view=view)

    def enter_unauthenticated(self) -> None:
        self._teardown()
        self._discard_room()
        self._show(View.AUTH)

    async def enter_lobby(self) -> None:
        if self.session is None:
            self.enter_unauthenticated()
            return
        self._teardown()
        self._discard_room()
        generation = self._generation
        self._show(View.LOBBY)

        try:
            games = await self._api.list_games()
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Failed to load games", True)
        else:
            if self._is_current(generation):
                self.games = games
                self._emit(ClientEvent.GAMES_LOADED, games=games)

        if not self._is_current(generation):
            return
        await self._refresh_rooms(generation)
        if self._is_current(generation):
            self._lobby_poller.start()

    async def _refresh_rooms(self, generation: int) -> None:
        try:
            rooms = await self._api.list_rooms()
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Failed to load rooms", True)
            return
        if self._is_current(generation):
            self._set_rooms(rooms)

    async def enter_room(self, room_id: str) -> None:
        if self.session is None:
            self.enter_unauthenticated()
            return
        previous_room = self._room_id
        self._teardown()
        self._discard_room()
        if previous_room is not None and previous_room != room_id:
            self._notify_leave(previous_room)
        generation = self._generation

        store = RoomStore(self.user_id)
        sequence = store.issue_sequence()
        try:
            snapshot = await self._api.get_room(room_id)
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Unable to enter room", True)
                await self.enter_lobby()
            return
        if not self._is_current(generation):
            return

        self._room_id = room_id
        self._store = store
        self._show(View.ROOM)
        self._apply_snapshot(snapshot, sequence)

        self._room_sync = RoomSync(
            self._api,
            self._scheduler,
            room_id,
            chat=self._chat,
            channel_factory=self._channel_factory,
            sequencer=store.issue_sequence,
            on_snapshot=self._guarded(generation, self._apply_snapshot),
            on_chat=self._guarded(generation, self._chat_updated),
            on_room_lost=self._guarded(generation, self._room_lost),
            on_transport=self._guarded(generation, self._transport_changed),
            poll_interval=self._settings.poll_interval,
        )
        await self._load_chat(generation)
        if self._is_current(generation):
            await self._room_sync.start()

    async def leave_room(self, *, notify_server: bool = True, notice: str | None = None) -> None:
        """Exit the room back to the lobby.

        An explicit exit tells the server (best effort) so seat occupancy
        stays accurate; error-recovery exits pass ``notify_server=False``.
        """
        room_id = self._room_id
        self._teardown()
        self._discard_room()
        if notify_server and room_id is not None:
            self._notify_leave(room_id)
        if notice:
            self._toast(notice, True)
        await self.enter_lobby()

    def _room_lost(self, exc: ApiError) -> None:
        # Any polling failure is treated as the room having been deleted.
        logger.warning("Room %s lost: %s", self._room_id, exc.message)
        self._teardown()
        self._scheduler.spawn(self._recover_from_room_loss(self._generation))

    async def _recover_from_room_loss(self, generation: int) -> None:
        if self._is_current(generation):
            await self.leave_room(notify_server=False, notice=ROOM_LOST_NOTICE)

    def _notify_leave(self, room_id: str) -> None:
        self._scheduler.spawn(self._send_leave(room_id))

    async def _send_leave(self, room_id: str) -> None:
        try:
            await self._api.leave_room(room_id)
        except ApiError as exc:
            logger.warning("Leave notification for room %s failed: %s", room_id, exc.message)

    # -- Room state ------------------------------------------------------

    def _apply_snapshot(self, snapshot: RoomSnapshot, sequence: int | None = None) -> None:
        if self._store is None:
            return
        result = self._store.apply(snapshot, sequence)
        if not result.applied:
            return
        self._timers.reconcile(snapshot, player_changed=result.player_changed)
        self._emit(ClientEvent.ROOM_UPDATED, room=snapshot, status_text=describe_status(snapshot))
        if result.turn_started:
            self._emit(ClientEvent.TURN_STARTED)
        if result.outcome is not None:
            self._emit(ClientEvent.MATCH_FINISHED, outcome=result.outcome)

    async def _load_chat(self, generation: int) -> None:
        room_id = self._room_id
        try:
            added = await self._chat.load_chat(
                room_id, still_current=lambda: self._is_current(generation)
            )
        except ApiError as exc:
            logger.warning("Initial chat load for room %s failed: %s", room_id, exc.message)
            return
        if added:
            self._chat_updated(added)

    def _chat_updated(self, added: list[ChatMessage]) -> None:
        self._emit(ClientEvent.CHAT_UPDATED, added=added, messages=self._chat.log.messages)

    def _transport_changed(self, state: TransportState, reason: str | None) -> None:
        self._emit(ClientEvent.TRANSPORT_CHANGED, state=state)
        if reason:
            self._toast(reason)

    def _set_rooms(self, rooms: list[RoomSnapshot]) -> None:
        self.rooms = rooms
        self._emit(ClientEvent.ROOMS_UPDATED, rooms=rooms)

    def _make_channel(self, room_id: str, **callbacks: Any) -> PushChannel:
        return PushChannel(
            self._settings.ws_url,
            room_id,
            self.session.token,
            self._scheduler,
            **callbacks,
        )

    # -- User actions ----------------------------------------------------

    async def _room_action(self, call, failure: str, success: str | None = None) -> bool:
        """Run a room request; apply the returned snapshot if still current."""
        if self._store is None or self._room_id is None:
            return False
        generation = self._generation
        sequence = self._store.issue_sequence()
        try:
            snapshot = await call(self._room_id)
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or failure, True)
            return False
        if not self._is_current(generation):
            return False
        if success:
            self._toast(success)
        self._apply_snapshot(snapshot, sequence)
        return True

    async def create_room(self, name: str, game_type: str, *, private: bool = False) -> bool:
        name = name.strip()
        if not name or not game_type:
            return False
        generation = self._generation
        try:
            room = await self._api.create_room(name, game_type, private=private)
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Failed to create room", True)
            return False
        if not self._is_current(generation):
            return False
        self._toast("Room created")
        await self.enter_room(room.id)
        return True

    async def join_room(self, room_id: str) -> bool:
        generation = self._generation
        try:
            await self._api.join_room(room_id)
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Failed to join room", True)
                await self._refresh_rooms(generation)
            return False
        if not self._is_current(generation):
            return False
        self._toast("Joined room")
        await self.enter_room(room_id)
        return True

    async def start_match(self) -> bool:
        return await self._room_action(self._api.start_room, "Unable to start match", "Match started")

    async def restart_match(self) -> bool:
        return await self._room_action(self._api.restart_room, "Unable to restart match", "Match restarted")

    async def submit_move(self, move: dict[str, Any]) -> bool:
        return await self._room_action(
            lambda room_id: self._api.submit_move(room_id, move), "Move rejected"
        )

    async def click_cell(self, row: int, col: int) -> MoveOutcome | None:
        """Feed a board click to the game adapter; submits when it yields a move."""
        if self._store is None or self._store.snapshot is None:
            return None
        outcome = self._store.adapter.apply_move(self._store.snapshot, self.user_id, (row, col))
        if outcome.action is MoveAction.SUBMIT:
            await self.submit_move(outcome.payload)
        return outcome

    async def send_chat(self, content: str) -> bool:
        content = content.strip()
        if not content or self._room_id is None:
            return False
        generation = self._generation
        room_id = self._room_id
        try:
            message = await self._api.send_chat(room_id, content)
        except ApiError as exc:
            if self._is_current(generation):
                self._toast(exc.message or "Failed to send message", True)
            return False
        if message is not None and self._is_current(generation):
            if self._chat.log.append(message):
                self._chat_updated([message])
        return True

    # -- Event output ----------------------------------------------------

    def _toast(self, message: str, is_error: bool = False) -> None:
        self._emit(ClientEvent.TOAST, message=message, is_error=is_error)

    def _emit(self, event: ClientEvent, **data: Any) -> None:
        try:
            self._on_event(EventPayload(event=event, room_id=self._room_id, data=data))
        except Exception:
            logger.exception("Event handler failed for %s", event.name)
