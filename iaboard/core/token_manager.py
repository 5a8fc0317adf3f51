from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from iaboard.utils.errors import QuotaExceededError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

WINDOW_SECONDS = 60 * 60


class ServiceQuota(BaseModel):
    key: str
    service: str
    tokens_per_hour: int
    endpoint: Optional[str] = None
    tokens_used: int = 0
    last_reset: float = 0.0


DEFAULT_QUOTAS: List[ServiceQuota] = [
    ServiceQuota(key="huggingface", service="Hugging Face", tokens_per_hour=1000,
                 endpoint="https://api-inference.huggingface.co"),
    ServiceQuota(key="replicate", service="Replicate", tokens_per_hour=100,
                 endpoint="https://api.replicate.com"),
    ServiceQuota(key="gradio", service="Gradio/HF Spaces", tokens_per_hour=500,
                 endpoint="https://huggingface.co/spaces"),
    ServiceQuota(key="fal", service="Fal.ai", tokens_per_hour=50, endpoint="https://fal.run"),
    ServiceQuota(key="openai", service="OpenAI", tokens_per_hour=500, endpoint="https://api.openai.com"),
    ServiceQuota(key="anthropic", service="Anthropic", tokens_per_hour=500,
                 endpoint="https://api.anthropic.com"),
    ServiceQuota(key="stability", service="Stability AI", tokens_per_hour=100,
                 endpoint="https://api.stability.ai"),
    ServiceQuota(key="elevenlabs", service="ElevenLabs", tokens_per_hour=100,
                 endpoint="https://api.elevenlabs.io"),
]


class TokenManager:
    """Hourly request budgets per vendor, reset one hour after the last reset."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._quotas: Dict[str, ServiceQuota] = {
            q.key: q.model_copy(update={"last_reset": now}) for q in DEFAULT_QUOTAS
        }

    def _reset_if_needed(self, quota: ServiceQuota) -> None:
        now = self._clock()
        if now - quota.last_reset >= WINDOW_SECONDS:
            quota.tokens_used = 0
            quota.last_reset = now

    def can_use(self, service: str) -> bool:
        with self._lock:
            quota = self._quotas.get(service)
            if quota is None:
                return False
            self._reset_if_needed(quota)
            return quota.tokens_used < quota.tokens_per_hour

    def use_token(self, service: str) -> bool:
        with self._lock:
            quota = self._quotas.get(service)
            if quota is None:
                return False
            self._reset_if_needed(quota)
            if quota.tokens_used >= quota.tokens_per_hour:
                LOGGER.warning("Hourly quota exhausted for %s", service)
                return False
            quota.tokens_used += 1
            return True

    def consume(self, service: str) -> None:
        """Like ``use_token`` but raises for a tracked service that is out of budget."""
        if service not in self._quotas:
            return
        if not self.use_token(service):
            raise QuotaExceededError(service, self.status(service)["resetTime"])

    def available_services(self) -> List[str]:
        return [key for key in self._quotas if self.can_use(key)]

    def status(self, service: str) -> Dict[str, object]:
        with self._lock:
            quota = self._quotas.get(service)
            if quota is None:
                return {"available": False, "tokensLeft": 0, "resetTime": "Unknown"}
            self._reset_if_needed(quota)
            tokens_left = quota.tokens_per_hour - quota.tokens_used
            reset_at = datetime.fromtimestamp(quota.last_reset + WINDOW_SECONDS, tz=timezone.utc)
            return {
                "available": tokens_left > 0,
                "tokensLeft": tokens_left,
                "resetTime": reset_at.isoformat(),
            }

    def all_status(self) -> Dict[str, Dict[str, object]]:
        result: Dict[str, Dict[str, object]] = {}
        for key, quota in self._quotas.items():
            result[key] = {
                **self.status(key),
                "service": quota.service,
                "endpoint": quota.endpoint,
            }
        return result


_token_manager: Optional[TokenManager] = None


def get_token_manager() -> TokenManager:
    global _token_manager
    if _token_manager is None:
        _token_manager = TokenManager()
    return _token_manager


def reset_token_manager() -> None:
    global _token_manager
    _token_manager = None
