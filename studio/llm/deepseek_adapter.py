from __future__ import annotations

import logging
import os
from typing import Optional

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, InternalServerError, RateLimitError
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


class DeepSeekAdapter(BaseLLMAdapter):

    def __init__(self, model: str = "deepseek-chat"):
        from studio.settings import get_settings
        api_key = get_settings().deepseek_api_key or os.getenv("DEEPSEEK_API_KEY")
        if not api_key:
            LOGGER.warning("DEEPSEEK_API_KEY not found. DeepSeek adapter will fail.")

        # OpenAI-compatible API
        self.client = AsyncOpenAI(base_url="https://api.deepseek.com", api_key=api_key)
        self.model = model
        LOGGER.info("Initialized DeepSeek adapter with model: %s", model)

    @retry(
        retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError, APITimeoutError)),
        wait=wait_exponential(multiplier=1, min=2, max=20),
        stop=stop_after_attempt(3),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
    )
    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        cached = get_cached(prompt, json_mode, cache_key)
        if cached:
            return cached

        result = await self._invoke(prompt, json_mode=json_mode)
        set_cached(prompt, result, json_mode, cache_key)
        return result

    async def _invoke(self, prompt: str, json_mode: bool) -> str:
        LOGGER.info("Calling DeepSeek with model '%s' (json_mode=%s)", self.model, json_mode)
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt(json_mode)},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
            "max_tokens": 8000,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)
        choice = response.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            LOGGER.error("DeepSeek response truncated due to token limit")
            raise RuntimeError("Response truncated (finish_reason=length)")

        content = choice.message.content
        LOGGER.info("DeepSeek response received (length=%d)", len(content or ""))
        return content or ""
