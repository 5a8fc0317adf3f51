from __future__ import annotations

import logging

from openai import APIConnectionError, AsyncOpenAI, InternalServerError, RateLimitError
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


class OpenAIAdapter(ProviderAdapter):
    provider_name = "openai"

    def __init__(self, model: str = "gpt-4o"):
        api_key = get_settings().openai_api_key
        if not api_key:
            LOGGER.warning("OPENAI_API_KEY not found. OpenAI adapter will fail.")
        self.client = AsyncOpenAI(api_key=api_key or "missing")
        self.model = model

    @retry(
        retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
        wait=wait_exponential(multiplier=1, min=2, max=20),
        stop=stop_after_attempt(3),
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
        LOGGER.info("Calling OpenAI with model '%s' (json_mode=%s)", self.model, json_mode)

        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            LOGGER.warning("OpenAI response truncated (finish_reason=length)")

        content = choice.message.content
        LOGGER.info("OpenAI response received (length=%d)", len(content or ""))
        return content or ""
