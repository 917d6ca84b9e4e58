from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from studio.settings import get_settings


class BaseLLMAdapter(ABC):
    @abstractmethod
    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        ...


_cached_adapter: Optional[BaseLLMAdapter] = None


def get_llm_adapter() -> BaseLLMAdapter:
    global _cached_adapter
    if _cached_adapter:
        return _cached_adapter

    settings = get_settings()
    if settings.llm_mode == "mock":
        from .mock_adapter import MockLLMAdapter
        _cached_adapter = MockLLMAdapter()

    elif settings.llm_mode == "groq":
        from .groq_adapter import GroqLLMAdapter
        _cached_adapter = GroqLLMAdapter(model=settings.groq_model)

    elif settings.llm_mode == "deepseek":
        from .deepseek_adapter import DeepSeekAdapter
        _cached_adapter = DeepSeekAdapter(model=settings.deepseek_model)

    elif settings.llm_mode == "gemini":
        from .gemini_adapter import GeminiAdapter
        _cached_adapter = GeminiAdapter(model=settings.gemini_model)

    else:  # ollama
        from .ollama_adapter import OllamaLLMAdapter
        _cached_adapter = OllamaLLMAdapter(model=settings.ollama_model)

    return _cached_adapter


def reset_llm_adapter() -> None:
    global _cached_adapter
    _cached_adapter = None


def system_prompt(json_mode: bool) -> str:
    prompt = "You are an agent inside a web application studio that generates React + TypeScript projects."
    if json_mode:
        prompt += (
            " You MUST respond with ONLY valid JSON. "
            "Do NOT include any text, explanations, or markdown before or after the JSON object. "
            "Start with { and end with }. "
            "Properly escape all newlines as \\n and quotes as \\\"."
        )
    return prompt
