from __future__ import annotations

import asyncio
import json
from typing import Any, List, Mapping, Optional, Set

from fastapi import WebSocket

from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WSManager:

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def broadcast(self, payload: Mapping[str, Any]) -> None:
        async with self._lock:
            connections = list(self._connections)

        if not connections:
            return

        message = json.dumps(payload, default=str)

        async def _send(connection: WebSocket) -> Optional[WebSocket]:
            try:
                # One slow client must not stall the others
                await asyncio.wait_for(connection.send_text(message), timeout=2.0)
                return None
            except Exception as e:
                LOGGER.debug("Failed to send WS message to client: %s", e)
                return connection

        results = await asyncio.gather(*(_send(c) for c in connections))
        dead_connections: List[WebSocket] = [c for c in results if c is not None]

        if dead_connections:
            async with self._lock:
                for conn in dead_connections:
                    self._connections.discard(conn)


_ws_manager: Optional[WSManager] = None


def get_ws_manager() -> WSManager:
    global _ws_manager
    if _ws_manager is None:
        _ws_manager = WSManager()
    return _ws_manager
