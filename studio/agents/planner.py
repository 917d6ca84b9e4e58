from __future__ import annotations

from typing import Any, Dict, List

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_structured
from studio.agents.prompts import PromptBuilder
from studio.core.state import REQUIRED_FILES, Plan
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _clean_paths(paths: Any) -> List[str]:
    if not isinstance(paths, list):
        return []
    seen: List[str] = []
    for item in paths:
        if not isinstance(item, str):
            continue
        path = item.strip().replace("\\", "/")
        while path.startswith("./"):
            path = path[2:]
        path = path.lstrip("/")
        if path and path not in seen:
            seen.append(path)
    return seen


def _prepare_plan(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    data["files"] = _clean_paths(data.get("files"))
    for key in ("features", "dependencies"):
        value = data.get(key)
        data[key] = [str(v) for v in value if v] if isinstance(value, list) else []
    return data


def ensure_required_files(plan: Plan) -> Plan:
    """Entry and data files are always part of the file tree."""
    files = list(plan.files)
    for required in REQUIRED_FILES:
        if required not in files:
            files.append(required)
    return plan.model_copy(update={"files": files})


class PlannerAgent(StageAgent):
    """Maps the SRS to features, a virtual file tree and npm dependencies."""

    name = "Planner"

    async def plan(self, srs: str) -> Plan:
        response = await self._complete(PromptBuilder.planner(srs), json_mode=True)
        plan = parse_structured(response, Plan, stage=self.name, fallback=Plan, prepare=_prepare_plan)
        plan = ensure_required_files(plan)
        LOGGER.info("Plan: %d features, %d files", len(plan.features), len(plan.files))
        return plan
