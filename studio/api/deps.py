from __future__ import annotations

from fastapi import Request, WebSocket

from studio.core.orchestrator import Orchestrator
from studio.core.store import ProjectStore


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def get_store(request: Request) -> ProjectStore:
    return request.app.state.orchestrator.store


def get_socket_orchestrator(websocket: WebSocket) -> Orchestrator:
    return websocket.app.state.orchestrator
