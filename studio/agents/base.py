from __future__ import annotations

from typing import Optional

from studio.llm.adapter import BaseLLMAdapter, get_llm_adapter
from studio.settings import get_settings
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StageAgent:
    """Shared plumbing for the pipeline agents: lazy adapter and call logging."""

    name = "Agent"

    def __init__(self, adapter: Optional[BaseLLMAdapter] = None) -> None:
        self._adapter = adapter
        self._settings = get_settings()

    @property
    def adapter(self) -> BaseLLMAdapter:
        if self._adapter is None:
            self._adapter = get_llm_adapter()
        return self._adapter

    async def _complete(self, prompt: str, *, json_mode: bool = False) -> str:
        LOGGER.debug("%s prompt (%d chars, json=%s)", self.name, len(prompt), json_mode)
        response = await self.adapter.acomplete(prompt, json_mode=json_mode)
        LOGGER.debug("%s response (%d chars)", self.name, len(response or ""))
        return response or ""
