from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from studio.memory import utils as db_utils
from studio.memory.db import get_session, init_db
from studio.settings import get_settings
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StateStorage(ABC):
    """Key/value store holding the serialized workspace document."""

    async def open(self) -> None:
        return None

    @abstractmethod
    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def save(self, key: str, payload: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class MemoryStateStorage(StateStorage):

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def save(self, key: str, payload: Dict[str, Any]) -> None:
        self._documents[key] = copy.deepcopy(payload)

    async def delete(self, key: str) -> None:
        self._documents.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._documents


class SqlStateStorage(StateStorage):

    async def open(self) -> None:
        await init_db()

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        async with get_session() as session:
            record = await db_utils.get_workspace(session, key)
            return dict(record.payload) if record is not None else None

    async def save(self, key: str, payload: Dict[str, Any]) -> None:
        async with get_session() as session:
            await db_utils.upsert_workspace(session, key, payload)
        LOGGER.debug("Workspace '%s' persisted", key)

    async def delete(self, key: str) -> None:
        async with get_session() as session:
            await db_utils.delete_workspace(session, key)
        LOGGER.info("Workspace '%s' cleared from storage", key)


def create_storage() -> StateStorage:
    settings = get_settings()
    if settings.storage_backend == "memory":
        return MemoryStateStorage()
    return SqlStateStorage()
