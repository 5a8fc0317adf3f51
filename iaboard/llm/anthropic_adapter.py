from __future__ import annotations

import logging

from anthropic import APIConnectionError, AsyncAnthropic, InternalServerError, RateLimitError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

from .adapter import ProviderAdapter

LOGGER = get_logger(__name__)


class AnthropicAdapter(ProviderAdapter):
    """Claude via the Messages API. First link of the default provider chain."""

    provider_name = "anthropic"

    def __init__(self, model: str = "claude-sonnet-4-20250514"):
        api_key = get_settings().anthropic_api_key
        if not api_key:
            LOGGER.warning("ANTHROPIC_API_KEY not found. Anthropic adapter will fail.")
        self.client = AsyncAnthropic(api_key=api_key or "missing")
        self.model = model

    @retry(
        retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        stop=stop_after_attempt(4),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
        reraise=True,
    )
    async def _invoke(
        self,
        prompt: str,
        *,
        system_prompt: str,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        LOGGER.info("Calling Anthropic with model '%s' (json_mode=%s)", self.model, json_mode)

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )

        if getattr(response, "stop_reason", None) == "max_tokens":
            LOGGER.warning("Anthropic response truncated (stop_reason=max_tokens)")

        # Only text blocks carry content we can render
        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        LOGGER.info("Anthropic response received (length=%d)", len(content))
        return content
