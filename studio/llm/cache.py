from __future__ import annotations

import hashlib
from typing import Dict, Optional

from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Process-local FIFO cache of provider responses
_cache: Dict[str, str] = {}
_MAX_CACHE_SIZE = 100


def _make_key(prompt: str, json_mode: bool) -> str:
    content = f"{prompt}|json={json_mode}"
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def get_cached(prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> Optional[str]:
    key = cache_key or _make_key(prompt, json_mode)
    result = _cache.get(key)
    if result:
        LOGGER.info("Cache HIT for key %s", key)
    return result


def set_cached(prompt: str, response: str, json_mode: bool = False, cache_key: Optional[str] = None) -> None:
    if not response:
        return
    key = cache_key or _make_key(prompt, json_mode)
    if len(_cache) >= _MAX_CACHE_SIZE:
        oldest_key = next(iter(_cache))
        del _cache[oldest_key]
    _cache[key] = response
    LOGGER.debug("Cache SET for key %s", key)


def clear_cache() -> None:
    _cache.clear()
    LOGGER.info("Cache cleared")
