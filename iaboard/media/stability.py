from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
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

BASE_URL = "https://api.stability.ai"
SDXL_ENGINE = "stable-diffusion-xl-1024-v1-0"


@dataclass
class ImageRequest:
    prompt: str
    negative_prompt: Optional[str] = None
    width: int = 1024
    height: int = 1024
    cfg_scale: float = 7
    steps: int = 30
    samples: int = 1
    seed: Optional[int] = None


@dataclass
class ImageResult:
    url: str
    filename: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class StabilityService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(get_settings().stability_api_key)

    def _payload(self, request: ImageRequest) -> Dict[str, Any]:
        prompts = [{"text": request.prompt, "weight": 1}]
        if request.negative_prompt:
            prompts.append({"text": request.negative_prompt, "weight": -1})
        payload: Dict[str, Any] = {
            "text_prompts": prompts,
            "cfg_scale": request.cfg_scale,
            "width": request.width,
            "height": request.height,
            "samples": request.samples,
            "steps": request.steps,
        }
        if request.seed:
            payload["seed"] = request.seed
        return payload

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        before_sleep=before_sleep_log(LOGGER, logging.INFO),
        reraise=True,
    )
    async def generate_image(self, request: ImageRequest) -> ImageResult:
        settings = get_settings()
        if not settings.stability_api_key:
            raise ProviderNotConfiguredError("stability", "STABILITY_API_KEY")

        LOGGER.info("Stability AI: generating image for prompt: %s", request.prompt[:100])
        async with httpx.AsyncClient(base_url=BASE_URL, timeout=120.0, transport=self._transport) as client:
            resp = await client.post(
                f"/v1/generation/{SDXL_ENGINE}/text-to-image",
                json=self._payload(request),
                headers={
                    "Authorization": f"Bearer {settings.stability_api_key}",
                    "Accept": "application/json",
                },
            )
        if resp.status_code >= 400:
            raise RuntimeError(f"Stability API error: {resp.status_code} - {resp.text[:300]}")

        artifacts = resp.json().get("artifacts") or []
        if not artifacts or not artifacts[0].get("base64"):
            raise RuntimeError("No image data received from Stability AI")

        filename = f"stability_img_{uuid4().hex[:12]}.png"
        path = settings.content_root / filename
        path.write_bytes(base64.b64decode(artifacts[0]["base64"]))
        LOGGER.info("Stability AI: image saved as %s", filename)

        return ImageResult(
            url=f"/ai-content/{filename}",
            filename=filename,
            metadata={
                "seed": artifacts[0].get("seed") or request.seed or 0,
                "model": SDXL_ENGINE,
                "resolution": f"{request.width}x{request.height}",
            },
        )
