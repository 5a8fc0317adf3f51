from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from iaboard.core.token_manager import get_token_manager
from iaboard.media.elevenlabs import ElevenLabsService
from iaboard.media.stability import ImageRequest, StabilityService
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.schemas import ImageGenerateRequest, SpeechRequest

router = APIRouter(prefix="/api/media", tags=["media"])

vendors: Dict[str, Any] = {
    "stability": StabilityService(),
    "elevenlabs": ElevenLabsService(),
}


@router.post("/image")
async def stability_image(payload: ImageGenerateRequest) -> Dict[str, Any]:
    if not vendors["stability"].configured:
        raise ProviderNotConfiguredError("stability")
    get_token_manager().consume("stability")
    params = payload.parameters
    image = await vendors["stability"].generate_image(
        ImageRequest(
            prompt=payload.prompt,
            negative_prompt=params.negativePrompt,
            width=params.width,
            height=params.height,
        )
    )
    return {"success": True, "url": image.url, "provider": "Stability AI", "metadata": image.metadata}


@router.post("/speech")
async def elevenlabs_speech(payload: SpeechRequest) -> Dict[str, Any]:
    if not vendors["elevenlabs"].configured:
        raise ProviderNotConfiguredError("elevenlabs")
    get_token_manager().consume("elevenlabs")
    speech = await vendors["elevenlabs"].synthesize_speech(payload.text, voice_id=payload.voiceId)
    return {"success": True, "url": speech.url, "provider": "ElevenLabs", "metadata": speech.metadata}


@router.get("/voices")
async def elevenlabs_voices() -> Dict[str, Any]:
    return {"success": True, "voices": await vendors["elevenlabs"].list_voices()}
