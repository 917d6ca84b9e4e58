"""Coercion of raw LLM output into stage results.

Under the ``lenient`` response policy a malformed response becomes the
caller's fallback value and a warning is logged. Under ``strict`` it raises
``MalformedResponseError`` so the run halts.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from studio.core.errors import MalformedResponseError
from studio.settings import get_settings
from studio.utils.json_parser import clean_and_parse_json, strip_code_fences
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _is_strict(policy: Optional[str]) -> bool:
    return (policy or get_settings().response_policy) == "strict"


def parse_structured(
    raw: str,
    model: Type[ModelT],
    *,
    stage: str,
    fallback: Callable[[], ModelT],
    policy: Optional[str] = None,
    prepare: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
) -> ModelT:
    """Parse a JSON response into ``model``."""
    try:
        data = clean_and_parse_json(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        if prepare is not None:
            data = prepare(data)
        return model.model_validate(data)
    except (ValueError, ValidationError) as exc:
        detail = str(exc).splitlines()[0]
        if _is_strict(policy):
            raise MalformedResponseError(stage, detail) from exc
        LOGGER.warning("%s returned malformed output (%s); using defaults", stage, detail)
        return fallback()


def parse_text(raw: str, *, stage: str, fallback: str, policy: Optional[str] = None) -> str:
    """Unwrap a free-text or source-code response, falling back when empty."""
    text = strip_code_fences(raw or "")
    if text.strip():
        return text
    if _is_strict(policy):
        raise MalformedResponseError(stage, "empty response")
    LOGGER.warning("%s returned an empty response; keeping fallback", stage)
    return fallback
