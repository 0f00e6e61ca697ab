"""
OCGP Lobby Client - Push Channel

WebSocket connection to the lobby server's room hub. The server only
pushes; the client never sends on this channel.
"""

from __future__ import annotations

import logging
from typing import Any, Callable
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from lobby_client.realtime.events import PushFrame, classify_frame
from lobby_client.realtime.timers import Scheduler

logger = logging.getLogger(__name__)


class ChannelError(Exception):
    """The push channel could not be established."""


class PushChannel:
    """One room subscription over a WebSocket.

    After ``close()`` no callback fires again, so a deliberate teardown
    is never reported as a failure.
    """

    def __init__(
        self,
        ws_url: str,
        room_id: str,
        token: str,
        scheduler: Scheduler,
        *,
        on_message: Callable[[PushFrame], None],
        on_close: Callable[[], None],
        on_error: Callable[[Exception], None],
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.room_id = room_id
        self._uri = f"{ws_url}?{urlencode({'roomId': room_id, 'token': token})}"
        self._scheduler = scheduler
        self._on_message = on_message
        self._on_close = on_close
        self._on_error = on_error
        self._connect = connect
        self._ws: Any = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    async def connect(self) -> None:
        """Open the connection and start reading frames.

        Raises:
            ChannelError: if the connection cannot be established.
        """
        try:
            ws = await self._connect(self._uri)
        except (OSError, WebSocketException) as exc:
            raise ChannelError(f"Push connect failed: {exc}") from exc
        if self._closed:
            # Torn down while the handshake was in flight
            self._scheduler.spawn(ws.close())
            raise ChannelError("Channel closed during connect")
        self._ws = ws
        self._scheduler.spawn(self._read_loop(ws))
        logger.info("Push channel open for room %s", self.room_id)

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                if self._closed:
                    return
                frame = classify_frame(raw)
                if frame is not None:
                    self._on_message(frame)
        except ConnectionClosedOK:
            pass
        except Exception as exc:
            if not self._closed:
                self._closed = True
                logger.warning("Push channel error for room %s: %s", self.room_id, exc)
                self._on_error(exc)
            return
        if not self._closed:
            self._closed = True
            logger.info("Push channel closed by server for room %s", self.room_id)
            self._on_close()

    def close(self) -> None:
        """Close immediately; pending callbacks are suppressed."""
        if self._closed and self._ws is None:
            return
        self._closed = True
        ws, self._ws = self._ws, None
        if ws is not None:
            self._scheduler.spawn(ws.close())
