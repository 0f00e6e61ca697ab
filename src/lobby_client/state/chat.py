"""
OCGP Lobby Client - Chat Cursor Sync

Incremental retrieval of a room's append-only chat log. Messages can
arrive from both the push channel and the poller; the log keeps them
id-ordered and drops ids it has already seen.
"""

from __future__ import annotations

import bisect
import logging
from typing import Callable, Iterable

from lobby_client.api.client import ApiClient
from lobby_client.api.models import ChatMessage

logger = logging.getLogger(__name__)


class ChatLog:
    """Id-ordered, duplicate-free message sequence with a cursor."""

    def __init__(self) -> None:
        self._ids: list[int] = []
        self._messages: list[ChatMessage] = []
        self.cursor = 0

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessage) -> bool:
        """Insert one message; False if its id was already present."""
        index = bisect.bisect_left(self._ids, message.id)
        if index < len(self._ids) and self._ids[index] == message.id:
            return False
        self._ids.insert(index, message.id)
        self._messages.insert(index, message)
        if message.id > self.cursor:
            self.cursor = message.id
        return True

    def extend(self, batch: Iterable[ChatMessage]) -> list[ChatMessage]:
        """Insert a batch; returns only the messages that were new."""
        return [m for m in batch if self.append(m)]

    def clear(self) -> None:
        self._ids.clear()
        self._messages.clear()
        self.cursor = 0


class ChatSync:
    """Pulls messages newer than the cursor into a ChatLog."""

    def __init__(self, api: ApiClient, log: ChatLog | None = None) -> None:
        self._api = api
        self.log = log or ChatLog()

    async def load_chat(
        self,
        room_id: str,
        *,
        still_current: Callable[[], bool] = lambda: True,
    ) -> list[ChatMessage]:
        """Fetch messages with id > cursor and merge them.

        The batch is dropped if ``still_current`` turns False while the
        request is in flight.

        Raises:
            ApiError: if the request fails.
        """
        since_id = self.log.cursor
        batch = await self._api.list_chat(room_id, since_id)
        if not still_current():
            logger.debug("Dropping stale chat batch for room %s", room_id)
            return []
        return self.log.extend(batch)
