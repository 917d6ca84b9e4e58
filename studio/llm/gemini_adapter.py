from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from studio.llm.cache import get_cached, set_cached
from studio.utils.logging import get_logger

from .adapter import BaseLLMAdapter, system_prompt

LOGGER = get_logger(__name__)

_TRANSIENT = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
)


class GeminiAdapter(BaseLLMAdapter):

    def __init__(self, model: str = "gemini-2.5-flash"):
        from studio.settings import get_settings
        api_key = get_settings().gemini_api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            LOGGER.warning("GEMINI_API_KEY not found. Gemini adapter will fail.")
        genai.configure(api_key=api_key)
        self.model_name = model

    @retry(
        retry=retry_if_exception_type(_TRANSIENT),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        stop=stop_after_attempt(4),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
    )
    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        cached = get_cached(prompt, json_mode, cache_key)
        if cached:
            return cached

        LOGGER.info("Calling Gemini with model '%s' (json_mode=%s)", self.model_name, json_mode)
        model = genai.GenerativeModel(self.model_name, system_instruction=system_prompt(json_mode))
        config = genai.types.GenerationConfig(
            temperature=0.2,
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        # The SDK call is blocking
        response = await asyncio.to_thread(model.generate_content, prompt, generation_config=config)

        try:
            content = response.text
        except ValueError as exc:
            # Raised when the candidate was blocked or carries no text part
            LOGGER.error("Gemini returned no text: %s", exc)
            raise RuntimeError(f"Gemini returned no text: {exc}") from exc

        LOGGER.info("Gemini response received (length=%d)", len(content or ""))
        set_cached(prompt, content or "", json_mode, cache_key)
        return content or ""
