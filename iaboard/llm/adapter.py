from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from iaboard.llm.cache import get_cached, make_key, set_cached
from iaboard.llm.concurrency import get_llm_semaphore
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "Você é um assistente de IA especializado em marketing digital, copywriting "
    "e funis de vendas. Responda em português brasileiro."
)

JSON_INSTRUCTIONS = (
    " You MUST respond with ONLY valid JSON. "
    "Do NOT include any text, explanations, or markdown before or after the JSON object. "
    "Start with { and end with }."
)


class BaseLLMAdapter(ABC):
    provider_name: str = "base"

    async def acomplete(
        self,
        prompt: str,
        json_mode: bool = False,
        cache_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        text, _ = await self.acomplete_with_provider(
            prompt,
            json_mode=json_mode,
            cache_key=cache_key,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return text

    @abstractmethod
    async def acomplete_with_provider(
        self,
        prompt: str,
        json_mode: bool = False,
        cache_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Tuple[str, str]:
        """Returns the completion and the name of the provider that produced it."""


class ProviderAdapter(BaseLLMAdapter):
    """A single vendor: cached, throttled by the shared semaphore."""

    async def acomplete_with_provider(
        self,
        prompt: str,
        json_mode: bool = False,
        cache_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Tuple[str, str]:
        key = cache_key or make_key(prompt, json_mode, system_prompt)
        cached = get_cached(key)
        if cached:
            LOGGER.info("Returning cached response from %s", self.provider_name)
            return cached, self.provider_name

        system = system_prompt or DEFAULT_SYSTEM_PROMPT
        if json_mode:
            system += JSON_INSTRUCTIONS

        async with get_llm_semaphore():
            result = await self._invoke(
                prompt,
                system_prompt=system,
                json_mode=json_mode,
                max_tokens=max_tokens or get_settings().llm_max_tokens,
                temperature=0.7 if temperature is None else temperature,
            )
        set_cached(key, result)
        return result, self.provider_name

    @abstractmethod
    async def _invoke(
        self,
        prompt: str,
        *,
        system_prompt: str,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


class ProviderChainAdapter(BaseLLMAdapter):
    """Tries each adapter in order and answers with the first that succeeds."""

    provider_name = "chain"

    def __init__(self, adapters: List[BaseLLMAdapter]) -> None:
        self.adapters = adapters
        self.last_provider: Optional[str] = None

    async def acomplete_with_provider(
        self,
        prompt: str,
        json_mode: bool = False,
        cache_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Tuple[str, str]:
        if not self.adapters:
            raise ProviderNotConfiguredError("llm", "ANTHROPIC_API_KEY/OPENAI_API_KEY/GROQ_API_KEY")

        last_error: Exception = RuntimeError("No provider answered")
        for adapter in self.adapters:
            try:
                text, provider = await adapter.acomplete_with_provider(
                    prompt,
                    json_mode=json_mode,
                    cache_key=cache_key,
                    system_prompt=system_prompt,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
                self.last_provider = provider
                return text, provider
            except Exception as exc:
                LOGGER.warning("Provider %s failed, trying next: %s", adapter.provider_name, exc)
                last_error = exc
        raise last_error


_cached_adapter: Optional[BaseLLMAdapter] = None


def _configured_chain() -> List[BaseLLMAdapter]:
    settings = get_settings()
    adapters: List[BaseLLMAdapter] = []
    if settings.anthropic_api_key:
        from .anthropic_adapter import AnthropicAdapter
        adapters.append(AnthropicAdapter(model=settings.anthropic_model))
    if settings.openai_api_key:
        from .openai_adapter import OpenAIAdapter
        adapters.append(OpenAIAdapter(model=settings.openai_model))
    if settings.groq_api_key:
        from .groq_adapter import GroqLLMAdapter
        adapters.append(GroqLLMAdapter(model=settings.groq_model))
    return adapters


def get_llm_adapter() -> BaseLLMAdapter:
    global _cached_adapter
    if _cached_adapter:
        return _cached_adapter

    settings = get_settings()
    if settings.llm_mode == "mock":
        from .mock_adapter import MockLLMAdapter
        _cached_adapter = MockLLMAdapter()

    elif settings.llm_mode == "anthropic":
        from .anthropic_adapter import AnthropicAdapter
        _cached_adapter = AnthropicAdapter(model=settings.anthropic_model)

    elif settings.llm_mode == "openai":
        from .openai_adapter import OpenAIAdapter
        _cached_adapter = OpenAIAdapter(model=settings.openai_model)

    elif settings.llm_mode == "groq":
        from .groq_adapter import GroqLLMAdapter
        _cached_adapter = GroqLLMAdapter(model=settings.groq_model)

    else:  # auto
        _cached_adapter = ProviderChainAdapter(_configured_chain())

    LOGGER.info("LLM adapter initialised: %s (mode=%s)", type(_cached_adapter).__name__, settings.llm_mode)
    return _cached_adapter


def reset_llm_adapter() -> None:
    global _cached_adapter
    _cached_adapter = None
