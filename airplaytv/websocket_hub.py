"""Websocket clients, their groups, and the events they may send."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Callable

from .models import to_jsonable

log = logging.getLogger(__name__)

EVENT_CONNECT = "connect"
EVENT_JOIN_GROUP = "join-group"
EVENT_SEND_TO_GROUP = "send-to-group"


def _encode(message: Any) -> str:
    if isinstance(message, str):
        return message
    if isinstance(message, (bytes, bytearray)):
        return bytes(message).decode("utf-8", errors="replace")
    return json.dumps(to_jsonable(message), ensure_ascii=False)


def _group_of(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    group = data.get("group")
    return group if isinstance(group, str) else ""


class WebsocketHub:
    """Tracks connected websockets and relays messages to clients and groups.

    A websocket is anything with an awaitable ``send_text(str)`` method.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._clients: dict[str, Any] = {}
        self._groups: dict[str, set[str]] = {}

    async def connect(self, websocket: Any) -> str:
        """Register a websocket, greet it, and return its client id."""
        client_id = self._new_id()
        self._clients[client_id] = websocket
        await self.send(
            client_id,
            {
                "event": EVENT_CONNECT,
                "data": {"code": 200, "msg": "socket已连接", "client_id": client_id},
            },
        )
        return client_id

    def disconnect(self, client_id: str) -> None:
        """Forget a client and remove it from every group."""
        self._clients.pop(client_id, None)
        for group in list(self._groups):
            members = self._groups[group]
            members.discard(client_id)
            if not members:
                del self._groups[group]

    def join_group(self, client_id: str, group: str) -> None:
        self._groups.setdefault(group, set()).add(client_id)

    async def send(self, client_id: str, message: Any) -> bool:
        """Send a message to one client; returns whether it was delivered."""
        websocket = self._clients.get(client_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(_encode(message))
        except Exception as exc:  # a broken connection only drops that client
            log.info("dropping client %s: %s", client_id, exc)
            self.disconnect(client_id)
            return False
        return True

    async def send_to_group(self, group: str, message: Any) -> int:
        """Send a message to every member of a group; returns how many got it."""
        text = _encode(message)
        delivered = 0
        for client_id in sorted(self._groups.get(group, ())):
            if await self.send(client_id, text):
                delivered += 1
        return delivered

    async def handle(self, client_id: str, message: str | bytes) -> bool:
        """Act on one event sent by a client; returns whether it was accepted."""
        try:
            document = json.loads(message)
        except ValueError:
            return False
        if not isinstance(document, dict):
            return False
        event = document.get("event")
        data = document.get("data")
        if event == EVENT_JOIN_GROUP:
            group = _group_of(data)
            if not group:
                return False
            self.join_group(client_id, group)
            await self.send(
                client_id,
                {
                    "event": event,
                    "data": {"code": 200, "msg": "已加入分组", "client_id": client_id, "group": group},
                },
            )
            return True
        if event == EVENT_SEND_TO_GROUP:
            group = _group_of(data)
            if not group:
                return False
            await self.send_to_group(group, data)
            return True
        return False