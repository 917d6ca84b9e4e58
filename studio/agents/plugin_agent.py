from __future__ import annotations

from typing import Any, Dict, Optional

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_structured
from studio.agents.prompts import PromptBuilder
from studio.agents.reviewer import normalize_comments
from studio.core.state import DesignSystem, NeuralPlugin, PluginResult
from studio.utils.json_parser import strip_code_fences
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _prepare_result(data: Dict[str, Any]) -> Dict[str, Any]:
    mutations = []
    raw = data.get("mutations")
    for item in raw if isinstance(raw, list) else []:
        if isinstance(item, dict) and isinstance(item.get("file"), str) and isinstance(item.get("content"), str):
            mutations.append({"file": item["file"], "content": strip_code_fences(item["content"])})
    return {"comments": normalize_comments(data.get("comments")), "mutations": mutations}


class PluginAgent(StageAgent):
    """Runs a plugin's prompt template against the current project."""

    name = "Plugin"

    async def run(
        self, plugin: NeuralPlugin, file_system: Dict[str, str], design: Optional[DesignSystem]
    ) -> PluginResult:
        response = await self._complete(PromptBuilder.plugin(plugin, file_system, design), json_mode=True)
        result = parse_structured(
            response,
            PluginResult,
            stage=f"Plugin {plugin.name}",
            fallback=PluginResult,
            prepare=_prepare_result,
        )
        LOGGER.info("Plugin %s returned %d comment(s), %d mutation(s)", plugin.id, len(result.comments), len(result.mutations))
        return result
