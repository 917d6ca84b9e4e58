from __future__ import annotations

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_text
from studio.agents.prompts import PromptBuilder
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PatcherAgent(StageAgent):
    name = "Patcher"

    async def patch(self, path: str, content: str, error_log: str) -> str:
        LOGGER.info("Patching %s: %s", path, error_log)
        response = await self._complete(PromptBuilder.patcher(path, content, error_log))
        return parse_text(response, stage=self.name, fallback=content)
