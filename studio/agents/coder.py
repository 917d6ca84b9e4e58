from __future__ import annotations

from typing import Dict

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_text
from studio.agents.prompts import PromptBuilder
from studio.core.state import DesignSystem, Plan


class CoderAgent(StageAgent):
    """Writes one file of the project at a time."""

    name = "Coder"

    async def write_file(self, path: str, plan: Plan, design: DesignSystem, file_system: Dict[str, str]) -> str:
        response = await self._complete(PromptBuilder.coder(path, plan, design, file_system))
        return parse_text(response, stage=self.name, fallback=file_system.get(path, ""))
