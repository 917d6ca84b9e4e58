from __future__ import annotations

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_text
from studio.agents.prompts import PromptBuilder
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ManagerAgent(StageAgent):
    """Turns the user's intent into a Software Requirement Specification."""

    name = "Manager"

    async def write_srs(self, user_prompt: str) -> str:
        response = await self._complete(PromptBuilder.manager(user_prompt))
        srs = parse_text(response, stage=self.name, fallback=f"## Overview\n{user_prompt}\n")
        LOGGER.info("SRS drafted (%d chars)", len(srs))
        return srs
