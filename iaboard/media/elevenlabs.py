from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

BASE_URL = "https://api.elevenlabs.io/v1"
DEFAULT_MODEL = "eleven_multilingual_v2"
DEFAULT_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.8,
    "style": 0.0,
    "use_speaker_boost": True,
}


@dataclass
class SpeechResult:
    url: str
    filename: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class ElevenLabsService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(get_settings().elevenlabs_api_key)

    def _api_key(self) -> str:
        key = get_settings().elevenlabs_api_key
        if not key:
            raise ProviderNotConfiguredError("elevenlabs", "ELEVENLABS_API_KEY")
        return key

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, timeout=60.0, transport=self._transport)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
        reraise=True,
    )
    async def synthesize_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        voice_settings: Optional[Dict[str, Any]] = None,
    ) -> SpeechResult:
        api_key = self._api_key()
        settings = get_settings()
        voice = voice_id or settings.elevenlabs_voice_id
        started = time.monotonic()
        LOGGER.info("ElevenLabs TTS: %s...", text[:50])

        async with self._client() as client:
            resp = await client.post(
                f"/text-to-speech/{voice}",
                json={
                    "text": text,
                    "model_id": model_id,
                    "voice_settings": {**DEFAULT_VOICE_SETTINGS, **(voice_settings or {})},
                },
                headers={"Accept": "audio/mpeg", "xi-api-key": api_key},
            )
        if resp.status_code == 401:
            raise RuntimeError("ElevenLabs authentication failed. Please check API key.")
        if resp.status_code >= 400:
            raise RuntimeError(f"ElevenLabs API error: {resp.status_code} - {resp.text[:300]}")

        filename = f"elevenlabs_audio_{uuid4().hex[:12]}.mp3"
        (settings.content_root / filename).write_bytes(resp.content)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        LOGGER.info("ElevenLabs TTS completed in %dms", elapsed_ms)

        return SpeechResult(
            url=f"/ai-content/{filename}",
            filename=filename,
            metadata={
                "voiceId": voice,
                "model": model_id,
                "characterCount": len(text),
                "processingTime": elapsed_ms,
            },
        )

    async def list_voices(self) -> List[Dict[str, Any]]:
        api_key = self._api_key()
        async with self._client() as client:
            resp = await client.get("/voices", headers={"xi-api-key": api_key})
        resp.raise_for_status()
        return [
            {
                "voice_id": v.get("voice_id"),
                "name": v.get("name"),
                "language": v.get("language") or "en",
                "description": v.get("description") or "",
                "preview_url": v.get("preview_url"),
            }
            for v in resp.json().get("voices", [])
        ]
