from __future__ import annotations

import asyncio
import logging
from typing import Optional

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from studio.llm.cache import get_cached, set_cached
from studio.utils.logging import get_logger

from .adapter import BaseLLMAdapter

LOGGER = get_logger(__name__)


class OllamaLLMAdapter(BaseLLMAdapter):

    def __init__(self, model: str = "llama3.2:3b"):
        self.model = model

    @retry(
        retry=retry_if_exception_type(RuntimeError),
        wait=wait_fixed(2),
        stop=stop_after_attempt(3),
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
    )
    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        cached = get_cached(prompt, json_mode, cache_key)
        if cached:
            return cached

        LOGGER.info("Calling Ollama with model '%s' (json_mode=%s)", self.model, json_mode)
        cmd = ["ollama", "run", self.model]
        if json_mode:
            cmd.extend(["--format", "json"])

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate(prompt.encode("utf-8"))
        except asyncio.CancelledError:
            # Stage timeout or run cancellation; do not leave ollama running
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        if process.returncode != 0:
            error_msg = stderr.decode("utf-8")
            LOGGER.error("Ollama failed: %s", error_msg)
            raise RuntimeError(f"Ollama exited with {process.returncode}: {error_msg}")

        result = stdout.decode("utf-8")
        if not result.strip():
            LOGGER.warning("Ollama returned empty response.")
            raise RuntimeError("Empty response from Ollama")

        LOGGER.info("Ollama response received (length=%d)", len(result))
        set_cached(prompt, result, json_mode, cache_key)
        return result
