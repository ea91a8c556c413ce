"""WebSocket fan-out of notifications and activity entries to admin consoles."""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks console connections per admin account and pushes typed messages."""

    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, owner_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(owner_id, []).append(websocket)
        logger.info(f"Console connected for {owner_id}. Total: {self.connection_count}")

    async def disconnect(self, owner_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(owner_id, [])
            if websocket in sockets:
                sockets.remove(websocket)
            if not sockets:
                self._connections.pop(owner_id, None)
        logger.info(f"Console disconnected for {owner_id}. Total: {self.connection_count}")

    async def send_to_owner(self, owner_id: str, message_type: str, data: Any) -> None:
        """Send a typed message to every console of one admin account."""
        payload = json.dumps({"type": message_type, "data": data})
        dead: list[WebSocket] = []

        async with self._lock:
            sockets = list(self._connections.get(owner_id, []))

        for ws in sockets:
            try:
                await ws.send_text(payload)
            except Exception:
                dead.append(ws)

        for ws in dead:
            await self.disconnect(owner_id, ws)

    @property
    def connection_count(self) -> int:
        return sum(len(s) for s in self._connections.values())


# Singleton
ws_manager = ConnectionManager()
