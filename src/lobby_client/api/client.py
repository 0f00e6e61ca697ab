"""
OCGP Lobby Client - HTTP API Client

Async request/response primitive over httpx plus one wrapper per
lobby endpoint. Every failure surfaces as an ApiError.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from lobby_client.api.errors import ApiError
from lobby_client.api.models import ChatMessage, GameInfo, RoomSnapshot, Session

logger = logging.getLogger(__name__)

API_ROOT = "/api"
TOKEN_HEADER = "X-Auth-Token"
MALFORMED = "Malformed response from server"

M = TypeVar("M", bound=BaseModel)


def _parse(model: type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Rejected %s payload: %s", model.__name__, exc.error_count())
        raise ApiError(MALFORMED) from exc


def _parse_many(model: type[M], items: Any) -> list[M]:
    if isinstance(items, dict):
        items = list(items.values())
    if not isinstance(items, list):
        raise ApiError(MALFORMED)
    return [_parse(model, item) for item in items]


class ApiClient:
    """Talks to the lobby server's JSON API.

    The auth token is attached as ``X-Auth-Token`` once set. A shared
    ``httpx.AsyncClient`` may be injected (tests pass one backed by
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.token: str | None = None

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        path: str,
        method: str = "GET",
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one request and return the decoded JSON object.

        Raises:
            ApiError: on transport failure, a non-2xx status (message taken
                from the body's ``error`` field), or an unparsable body.
        """
        headers = {}
        if self.token:
            headers[TOKEN_HEADER] = self.token
        try:
            response = await self._http.request(
                method, API_ROOT + path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Network error: {exc}") from exc

        body: dict[str, Any] = {}
        if response.content:
            try:
                body = response.json()
            except ValueError:
                logger.warning("Unparsable JSON from %s %s", method, path)

        if response.is_error:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(message or f"HTTP {response.status_code}", response.status_code)
        if not isinstance(body, dict):
            raise ApiError("Unexpected response body", response.status_code)
        return body

    # -- Auth ------------------------------------------------------------

    async def register(self, username: str, password: str) -> Session:
        data = await self.request(
            "/register", "POST", json={"username": username, "password": password}
        )
        return _parse(Session, data)

    async def login(self, username: str, password: str) -> Session:
        data = await self.request(
            "/login", "POST", json={"username": username, "password": password}
        )
        return _parse(Session, data)

    async def ping(self) -> None:
        """Cheap authenticated round trip used by the latency probe."""
        await self.request("/me")

    # -- Lobby -----------------------------------------------------------

    async def list_games(self) -> list[GameInfo]:
        data = await self.request("/games")
        return _parse_many(GameInfo, data.get("games") or [])

    async def list_rooms(self, game_type: str | None = None) -> list[RoomSnapshot]:
        params = {"gameType": game_type} if game_type else None
        data = await self.request("/rooms", params=params)
        return _parse_many(RoomSnapshot, data.get("rooms") or [])

    async def create_room(
        self, name: str, game_type: str, *, private: bool = False
    ) -> RoomSnapshot:
        data = await self.request(
            "/rooms",
            "POST",
            json={"name": name, "gameType": game_type, "private": private},
        )
        return _parse(RoomSnapshot, data.get("room"))

    # -- Room ------------------------------------------------------------

    async def get_room(self, room_id: str) -> RoomSnapshot:
        data = await self.request(f"/rooms/{room_id}")
        return _parse(RoomSnapshot, data.get("room"))

    async def join_room(self, room_id: str) -> RoomSnapshot:
        data = await self.request(f"/rooms/{room_id}/join", "POST")
        return _parse(RoomSnapshot, data.get("room"))

    async def leave_room(self, room_id: str) -> None:
        await self.request(f"/rooms/{room_id}/leave", "POST")

    async def start_room(self, room_id: str) -> RoomSnapshot:
        data = await self.request(f"/rooms/{room_id}/start", "POST")
        return _parse(RoomSnapshot, data.get("room"))

    async def restart_room(self, room_id: str) -> RoomSnapshot:
        data = await self.request(f"/rooms/{room_id}/restart", "POST")
        return _parse(RoomSnapshot, data.get("room"))

    async def submit_move(self, room_id: str, move: dict[str, Any]) -> RoomSnapshot:
        data = await self.request(f"/rooms/{room_id}/move", "POST", json=move)
        return _parse(RoomSnapshot, data.get("room"))

    # -- Chat ------------------------------------------------------------

    async def list_chat(self, room_id: str, since_id: int = 0) -> list[ChatMessage]:
        data = await self.request(
            f"/rooms/{room_id}/chat", params={"sinceId": since_id}
        )
        return _parse_many(ChatMessage, data.get("messages") or [])

    async def send_chat(self, room_id: str, content: str) -> ChatMessage | None:
        data = await self.request(
            f"/rooms/{room_id}/chat", "POST", json={"content": content}
        )
        message = data.get("message")
        return _parse(ChatMessage, message) if message else None
