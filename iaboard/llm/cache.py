from __future__ import annotations

import hashlib
from typing import Dict, Optional

from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

# In-process only, shared by every adapter
_cache: Dict[str, str] = {}
_MAX_CACHE_SIZE = 100


def make_key(prompt: str, json_mode: bool, system_prompt: Optional[str] = None) -> str:
    content = f"{system_prompt or ''}|{prompt}|json={json_mode}"
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def get_cached(key: str) -> Optional[str]:
    result = _cache.get(key)
    if result:
        LOGGER.debug("Cache HIT for key %s", key)
    return result


def set_cached(key: str, response: str) -> None:
    if not response:
        return
    # FIFO eviction
    if len(_cache) >= _MAX_CACHE_SIZE:
        oldest_key = next(iter(_cache))
        del _cache[oldest_key]
    _cache[key] = response


def cache_size() -> int:
    return len(_cache)


def clear_cache() -> None:
    _cache.clear()
    LOGGER.info("Cache cleared")
