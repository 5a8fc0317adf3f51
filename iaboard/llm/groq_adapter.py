from __future__ import annotations

import logging

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

from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

from .adapter import ProviderAdapter

LOGGER = get_logger(__name__)


class GroqLLMAdapter(ProviderAdapter):
    provider_name = "groq"

    def __init__(self, model: str = "llama-3.3-70b-versatile"):
        api_key = get_settings().groq_api_key
        if not api_key:
            LOGGER.warning("GROQ_API_KEY not found. Groq adapter will fail.")
        self.client = AsyncGroq(api_key=api_key or "missing")
        self.model = model

    @retry(
        retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
        # Groq rate limits need longer cool-downs
        wait=wait_exponential(multiplier=1, min=2, max=60),
        stop=stop_after_attempt(5),
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
        try:
            return await self._chat(prompt, system_prompt, json_mode, max_tokens, temperature)
        except BadRequestError as exc:
            LOGGER.error("Groq bad request (json_mode=%s): %s", json_mode, exc)
            if json_mode:
                LOGGER.warning("Falling back to text mode (json_mode=False) due to bad request.")
                return await self._chat(prompt, system_prompt, False, max_tokens, temperature)
            raise
        except (AuthenticationError, PermissionDeniedError) as exc:
            LOGGER.critical("Groq authentication/permission error: %s. Check your GROQ_API_KEY.", exc)
            raise

    async def _chat(
        self, prompt: str, system_prompt: str, json_mode: bool, max_tokens: int, temperature: float
    ) -> str:
        LOGGER.info("Calling Groq with model '%s' (json_mode=%s)", self.model, json_mode)
        chat_completion = await self.client.chat.completions.create(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            model=self.model,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"} if json_mode else None,
        )
        content = chat_completion.choices[0].message.content
        LOGGER.info("Groq response received (length=%d)", len(content or ""))
        return content or ""
