from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from studio.api.deps import get_socket_orchestrator
from studio.core.event_bus import StudioEvent
from studio.core.ws_manager import get_ws_manager
from studio.utils.logging import get_logger

router = APIRouter()
LOGGER = get_logger(__name__)


@router.websocket("/ws/studio")
async def studio_socket(websocket: WebSocket) -> None:
    orchestrator = get_socket_orchestrator(websocket)
    await get_ws_manager().connect(websocket)
    # First frame carries the full state so the client can render immediately
    hello = StudioEvent(type="state", msg="WebSocket connected", data=orchestrator.store.public_state())
    await websocket.send_json(hello.model_dump())
    try:
        while True:
            payload = await websocket.receive_text()
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict) or data.get("type") != "command":
                continue
            command = data.get("command")
            if command == "reset":
                await orchestrator.reset()
                await websocket.send_json({"type": "info", "msg": "reset done"})
            else:
                LOGGER.debug("Ignoring unknown WS command %r", command)
                await websocket.send_json({"type": "info", "msg": f"unknown command: {command}"})
    except WebSocketDisconnect:
        await get_ws_manager().disconnect(websocket)
