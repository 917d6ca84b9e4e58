from __future__ import annotations

from typing import List

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_structured
from studio.agents.prompts import PromptBuilder
from studio.core.state import DesignSystem
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _fallback_app_name(user_prompt: str) -> str:
    words = user_prompt.split()[:4]
    return " ".join(w.capitalize() for w in words) or "Generated App"


class DesignerAgent(StageAgent):
    name = "Designer"

    async def design(self, user_prompt: str, features: List[str]) -> DesignSystem:
        response = await self._complete(PromptBuilder.designer(user_prompt, features), json_mode=True)
        design = parse_structured(response, DesignSystem, stage=self.name, fallback=DesignSystem)
        if not design.metadata.app_name.strip():
            design.metadata.app_name = _fallback_app_name(user_prompt)
        LOGGER.info("Design system ready: %s (%s)", design.metadata.app_name, design.metadata.style_vibe)
        return design
