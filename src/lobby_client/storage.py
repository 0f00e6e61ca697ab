"""
OCGP Lobby Client - Session Storage

The session survives restarts through a caller-supplied key-value store.
Token and user are kept under two separate keys.
"""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import ValidationError

from lobby_client.api.models import Session, User

logger = logging.getLogger(__name__)

TOKEN_KEY = "ocgpToken"
USER_KEY = "ocgpUser"


class KeyValueStore(Protocol):
    """Minimal persistent string store (get/set/delete)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local KeyValueStore."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SessionStore:
    """Reads and writes the Session through a KeyValueStore."""

    def __init__(self, backend: KeyValueStore) -> None:
        self._backend = backend

    def load(self) -> Session | None:
        """Return the stored session, or None if missing or corrupt."""
        token = self._backend.get(TOKEN_KEY)
        user_json = self._backend.get(USER_KEY)
        if not token or not user_json:
            return None
        try:
            user = User.model_validate_json(user_json)
        except ValidationError:
            logger.warning("Discarding corrupt stored user record")
            self.clear()
            return None
        return Session(token=token, user=user)

    def save(self, session: Session) -> None:
        self._backend.set(TOKEN_KEY, session.token)
        self._backend.set(USER_KEY, session.user.model_dump_json())

    def clear(self) -> None:
        self._backend.delete(TOKEN_KEY)
        self._backend.delete(USER_KEY)
