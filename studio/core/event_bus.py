from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from studio.core.ws_manager import get_ws_manager
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

Subscriber = Callable[["StudioEvent"], Awaitable[None]]


class StudioEvent(BaseModel):
    type: str = Field(default="state")  # state | log | status | snapshot | resources | reset | plugin
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    agent: str = Field(default="system")
    level: str = Field(default="info")
    msg: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class EventBus:
    """In-process fan-out of state-change events."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    async def publish(self, event: StudioEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event)
            except Exception:
                # Observers never break the writer
                LOGGER.exception("Event subscriber failed for %s event", event.type)

    async def emit(
        self,
        type: str,
        msg: str = "",
        *,
        agent: str = "system",
        level: str = "info",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.publish(StudioEvent(type=type, msg=msg, agent=agent, level=level, data=data or {}))


async def broadcast_to_websockets(event: StudioEvent) -> None:
    payload = event.model_dump()
    LOGGER.debug("Broadcasting WS event %s: %s", event.type, payload.get("msg", "")[:100])
    await get_ws_manager().broadcast(payload)
