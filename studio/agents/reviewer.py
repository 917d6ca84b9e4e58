from __future__ import annotations

from typing import Any, Dict, List

from studio.agents.base import StageAgent
from studio.agents.parsing import parse_structured
from studio.agents.prompts import PromptBuilder
from studio.core.state import DesignSystem, ReviewReport
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_SCORE = 70.0


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_comments(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    comments = []
    for item in raw:
        if isinstance(item, dict):
            comments.append({k: str(v) for k, v in item.items() if v is not None})
        elif isinstance(item, str) and item.strip():
            # Some models answer with bare strings
            comments.append({"message": item.strip()})
    return comments


def _prepare_report(data: Dict[str, Any]) -> Dict[str, Any]:
    scores = data.get("scores")
    scores = {str(k): float(v) for k, v in scores.items() if _numeric(v)} if isinstance(scores, dict) else {}
    overall = data.get("overallScore", data.get("overall_score", data.get("score")))
    if not _numeric(overall):
        overall = sum(scores.values()) / len(scores) if scores else DEFAULT_SCORE
    return {"overallScore": overall, "scores": scores, "comments": normalize_comments(data.get("comments"))}


class ReviewerAgent(StageAgent):
    """Audits the generated project and scores it."""

    name = "Reviewer"

    async def review(self, file_system: Dict[str, str], design: DesignSystem) -> ReviewReport:
        LOGGER.info("ReviewerAgent starting code review of %d files...", len(file_system))
        response = await self._complete(PromptBuilder.reviewer(file_system, design), json_mode=True)
        report = parse_structured(
            response,
            ReviewReport,
            stage=self.name,
            fallback=lambda: ReviewReport(overall_score=DEFAULT_SCORE),
            prepare=_prepare_report,
        )
        LOGGER.info("Review complete. Score: %s/100, Comments: %d", report.overall_score, len(report.comments))
        return report
