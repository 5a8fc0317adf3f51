import asyncio
from typing import Optional

from iaboard.settings import get_settings

_semaphore: Optional[asyncio.Semaphore] = None


def get_llm_semaphore() -> asyncio.Semaphore:
    """Process-wide cap on in-flight vendor LLM requests."""
    global _semaphore
    if _semaphore is None:
        _semaphore = asyncio.Semaphore(get_settings().llm_semaphore)
    return _semaphore


def reset_llm_semaphore() -> None:
    global _semaphore
    _semaphore = None
