from __future__ import annotations

from iaboard.core.templates import generate_text

from .adapter import ProviderAdapter

JSON_MARKER = "JSON_SPEC::"


class MockLLMAdapter(ProviderAdapter):
    """Offline adapter: template text, or the JSON echoed after ``JSON_SPEC::``."""

    provider_name = "mock"

    async def _invoke(
        self,
        prompt: str,
        *,
        system_prompt: str,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        if JSON_MARKER in prompt:
            _, payload = prompt.split(JSON_MARKER, maxsplit=1)
            return payload.strip()
        if json_mode:
            return "{}"
        return generate_text(prompt).content
