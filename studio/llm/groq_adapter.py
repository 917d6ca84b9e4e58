from __future__ import annotations

import logging
import os
from typing import Optional

from groq import (
    APIConnectionError,
    AsyncGroq,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)
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


class GroqLLMAdapter(BaseLLMAdapter):

    def __init__(self, model: str = "llama-3.3-70b-versatile"):
        from studio.settings import get_settings
        settings = get_settings()
        api_key = settings.groq_api_key or os.getenv("GROQ_API_KEY")
        if not api_key:
            LOGGER.warning("GROQ_API_KEY not found. Groq adapter will fail.")
        self.client = AsyncGroq(api_key=api_key)
        self.model = model

    @retry(
        retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
        wait=wait_exponential(multiplier=1, min=2, max=60),
        stop=stop_after_attempt(6),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
    )
    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        cached = get_cached(prompt, json_mode, cache_key)
        if cached:
            return cached

        try:
            result = await self._invoke(prompt, json_mode=json_mode)
        except BadRequestError as exc:
            LOGGER.error("Groq bad request (json_mode=%s): %s", json_mode, exc)
            if not json_mode:
                raise
            LOGGER.warning("Falling back to text mode (json_mode=False) due to bad request.")
            result = await self._invoke(prompt, json_mode=False)
        except (AuthenticationError, PermissionDeniedError) as exc:
            LOGGER.critical("Groq authentication/permission error: %s. Check your GROQ_API_KEY.", exc)
            raise
        set_cached(prompt, result, json_mode, cache_key)
        return result

    async def _invoke(self, prompt: str, json_mode: bool) -> str:
        LOGGER.info("Calling Groq with model '%s' (json_mode=%s)", self.model, json_mode)
        chat_completion = await self.client.chat.completions.create(
            messages=[
                {"role": "system", "content": system_prompt(json_mode)},
                {"role": "user", "content": prompt},
            ],
            model=self.model,
            temperature=0.2,
            max_tokens=8000,
            response_format={"type": "json_object"} if json_mode else None,
        )
        choice = chat_completion.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            LOGGER.error("Groq response truncated due to token limit (finish_reason=length)")
            raise RuntimeError("Groq response truncated (finish_reason=length)")

        content = choice.message.content
        LOGGER.info("Groq response received (length=%d)", len(content or ""))
        return content or ""
