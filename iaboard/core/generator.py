"""Unified text/image/video/audio generation.

Vendor APIs are tried first when configured; the local fallbacks are the
keyword template engine for text and ImageMagick/FFmpeg renders for media.
"""
from __future__ import annotations

import asyncio
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from iaboard.core import templates
from iaboard.core.token_manager import get_token_manager
from iaboard.llm.adapter import BaseLLMAdapter, get_llm_adapter
from iaboard.media.elevenlabs import ElevenLabsService
from iaboard.media.stability import ImageRequest, StabilityService
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session
from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

CONTENT_TYPES = ("text", "image", "video", "audio")
TEMPLATE_PROVIDER = "Template Engine"
RENDER_TIMEOUT = 60
MAX_RENDER_SECONDS = 60.0


@dataclass
class GenerationResult:
    success: bool
    content: Optional[str] = None
    url: Optional[str] = None
    provider: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


async def run_render(command: Sequence[str], timeout: int = RENDER_TIMEOUT) -> int:
    """Runs a media tool; raises FileNotFoundError when it is not installed."""
    process = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.communicate()
        LOGGER.error("%s timed out after %ss", command[0], timeout)
        return -1
    if process.returncode != 0:
        LOGGER.warning("%s exited with %s: %s", command[0], process.returncode,
                       (stderr or b"").decode("utf-8", errors="ignore")[:300])
    return process.returncode


def _media_id(kind: str) -> str:
    return f"ai_{kind}_{uuid4().hex[:12]}"


def render_seconds(value: Any, default: float) -> float:
    """Clip length for the lavfi sources, clamped to 1..MAX_RENDER_SECONDS."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(seconds):
        return default
    return min(max(seconds, 1.0), MAX_RENDER_SECONDS)


def pixels(value: Any, default: int = 1024) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return default
    return min(max(size, 256), 2048)


def annotation_text(text: str) -> str:
    # -annotate reads a file for a leading @ and expands % escapes
    return text.strip().lstrip("@").replace("%", "%%") or templates.DEFAULT_SUBJECT


class ContentGenerator:
    def __init__(
        self,
        adapter: Optional[BaseLLMAdapter] = None,
        stability: Optional[StabilityService] = None,
        elevenlabs: Optional[ElevenLabsService] = None,
    ) -> None:
        self._adapter = adapter
        self._stability = stability or StabilityService()
        self._elevenlabs = elevenlabs or ElevenLabsService()

    async def generate(
        self, content_type: str, prompt: str, parameters: Optional[Dict[str, Any]] = None
    ) -> GenerationResult:
        parameters = parameters or {}
        LOGGER.info("Generating %s content: %s", content_type, (prompt or "")[:80])

        if not (prompt or "").strip():
            return GenerationResult(success=False, error="Prompt is required")

        if content_type == "text":
            result = await self._generate_text(prompt, parameters)
        elif content_type == "image":
            result = await self._generate_image(prompt, parameters)
        elif content_type == "video":
            result = await self._generate_video(prompt, parameters)
        elif content_type == "audio":
            result = await self._generate_audio(prompt, parameters)
        else:
            return GenerationResult(success=False, error="Unsupported content type")

        await self._record(content_type, prompt, result)
        return result

    async def _record(self, content_type: str, prompt: str, result: GenerationResult) -> None:
        try:
            async with get_session() as session:
                await db_utils.record_generation(
                    session,
                    content_type=content_type,
                    prompt=prompt[:2000],
                    provider=result.provider,
                    success=result.success,
                    url=result.url,
                    error=result.error,
                    data=result.metadata,
                )
        except Exception:
            LOGGER.exception("Failed to record %s generation", content_type)

    # --- text ---

    async def _generate_text(self, prompt: str, parameters: Dict[str, Any]) -> GenerationResult:
        settings = get_settings()
        if settings.llm_mode != "mock":
            try:
                adapter = self._adapter or get_llm_adapter()
                content, provider = await adapter.acomplete_with_provider(
                    prompt,
                    system_prompt=parameters.get("systemPrompt"),
                    max_tokens=parameters.get("maxTokens"),
                    temperature=parameters.get("temperature"),
                )
                if content.strip():
                    get_token_manager().use_token(provider)
                    return GenerationResult(
                        success=True,
                        content=content,
                        provider=provider,
                        metadata={
                            "promptType": templates.analyze_prompt_type(prompt),
                            "wordCount": len(content.split()),
                        },
                    )
                LOGGER.warning("LLM returned empty text, using templates")
            except Exception as exc:
                LOGGER.warning("LLM text generation failed, using templates: %s", exc)

        text = templates.generate_text(prompt)
        return GenerationResult(
            success=True,
            content=text.content,
            provider=TEMPLATE_PROVIDER,
            metadata={**text.metadata, "fallback": settings.llm_mode != "mock"},
        )

    # --- image ---

    async def _generate_image(self, prompt: str, parameters: Dict[str, Any]) -> GenerationResult:
        tokens = get_token_manager()
        if self._stability.configured and tokens.can_use("stability"):
            try:
                image = await self._stability.generate_image(
                    ImageRequest(
                        prompt=prompt,
                        negative_prompt=parameters.get("negativePrompt"),
                        width=pixels(parameters.get("width")),
                        height=pixels(parameters.get("height")),
                    )
                )
                tokens.use_token("stability")
                return GenerationResult(
                    success=True, url=image.url, provider="Stability AI", metadata=image.metadata
                )
            except Exception as exc:
                LOGGER.warning("Stability generation failed, rendering locally: %s", exc)

        if not get_settings().enable_local_media:
            return GenerationResult(success=False, error="Local media rendering disabled")

        image_id = _media_id("img")
        filename = f"{image_id}.png"
        output = get_settings().content_root / filename
        text = annotation_text(templates.extract_subject(prompt))
        color = templates.select_color(prompt)
        command = [
            "convert", "-size", "1024x1024", f"xc:{color}",
            "-pointsize", "48", "-fill", "white", "-gravity", "center",
            "-annotate", "+0+0", text, str(output),
        ]
        try:
            code = await run_render(command)
        except FileNotFoundError:
            return GenerationResult(success=False, error="ImageMagick not available")
        if code != 0:
            return GenerationResult(success=False, error="Image generation failed")
        return GenerationResult(
            success=True,
            url=f"/ai-content/{filename}",
            provider="Local Image Renderer",
            metadata={"prompt": prompt, "color": color, "text": text, "generated": True},
        )

    # --- video ---

    async def _generate_video(self, prompt: str, parameters: Dict[str, Any]) -> GenerationResult:
        if not get_settings().enable_local_media:
            return GenerationResult(success=False, error="Local media rendering disabled")

        aspect_ratio = parameters.get("aspectRatio") or "16:9"
        width, height = templates.dimensions(aspect_ratio)
        duration = render_seconds(parameters.get("duration"), 5.0)
        color = templates.select_color(prompt)
        filename = f"{_media_id('video')}.mp4"
        output = get_settings().content_root / filename
        command: List[str] = [
            "ffmpeg", "-f", "lavfi",
            "-i", f"color=c={color}:size={width}x{height}:duration={duration:g}",
            "-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p",
            "-y", str(output),
        ]
        try:
            code = await run_render(command)
        except FileNotFoundError:
            return GenerationResult(success=False, error="FFmpeg not available")
        if code != 0:
            return GenerationResult(success=False, error="Video generation failed")
        return GenerationResult(
            success=True,
            url=f"/ai-content/{filename}",
            provider="Local Video Renderer",
            metadata={
                "prompt": prompt,
                "duration": duration,
                "aspectRatio": aspect_ratio,
                "color": color,
                "generated": True,
            },
        )

    # --- audio ---

    async def _generate_audio(self, prompt: str, parameters: Dict[str, Any]) -> GenerationResult:
        tokens = get_token_manager()
        if self._elevenlabs.configured and tokens.can_use("elevenlabs"):
            try:
                speech = await self._elevenlabs.synthesize_speech(
                    parameters.get("text") or prompt, voice_id=parameters.get("voiceId")
                )
                tokens.use_token("elevenlabs")
                return GenerationResult(
                    success=True, url=speech.url, provider="ElevenLabs", metadata=speech.metadata
                )
            except Exception as exc:
                LOGGER.warning("ElevenLabs synthesis failed, rendering tone: %s", exc)

        if not get_settings().enable_local_media:
            return GenerationResult(success=False, error="Local media rendering disabled")

        frequency = templates.tone_frequency(prompt)
        duration = render_seconds(parameters.get("duration"), 10.0)
        filename = f"{_media_id('audio')}.mp3"
        output = get_settings().content_root / filename
        command = [
            "ffmpeg", "-f", "lavfi",
            "-i", f"sine=frequency={frequency}:duration={duration:g}",
            "-codec:a", "mp3", "-y", str(output),
        ]
        try:
            code = await run_render(command)
        except FileNotFoundError:
            return GenerationResult(success=False, error="FFmpeg not available")
        if code != 0:
            return GenerationResult(success=False, error="Audio generation failed")
        return GenerationResult(
            success=True,
            url=f"/ai-content/{filename}",
            provider="Local Audio Renderer",
            metadata={"prompt": prompt, "frequency": frequency, "duration": duration, "generated": True},
        )
