import asyncio

import pytest

from iaboard import settings as settings_module
from iaboard.core import generator as generator_module
from iaboard.core.generator import ContentGenerator, annotation_text, pixels, render_seconds
from iaboard.core.modules import execute_module
from iaboard.memory.db import dispose_engine, init_db


class FakeProcess:
    def __init__(self, returncode):
        self.returncode = returncode

    async def communicate(self):
        return b"", b"render error"

    def kill(self):
        pass


@pytest.fixture
def local_media(monkeypatch):
    monkeypatch.setenv("ENABLE_LOCAL_MEDIA", "true")
    settings_module.get_settings.cache_clear()


@pytest.fixture
def renders(monkeypatch):
    """Captures media tool argv; ``renders.returncode`` or ``renders.missing`` change the outcome."""

    class Recorder:
        commands = []
        returncode = 0
        missing = False

    async def fake_exec(*argv, **kwargs):
        if Recorder.missing:
            raise FileNotFoundError(argv[0])
        Recorder.commands.append(list(argv))
        return FakeProcess(Recorder.returncode)

    monkeypatch.setattr(generator_module.asyncio, "create_subprocess_exec", fake_exec)
    Recorder.commands = []
    return Recorder


def _generate(content_type, prompt, parameters=None):
    async def inner():
        await init_db()
        try:
            return await ContentGenerator().generate(content_type, prompt, parameters)
        finally:
            await dispose_engine()

    return asyncio.run(inner())


def test_render_seconds_coerces_and_clamps():
    assert render_seconds("12", 5.0) == 12.0
    assert render_seconds("60 segundos", 5.0) == 5.0
    assert render_seconds(None, 10.0) == 10.0
    assert render_seconds(float("nan"), 5.0) == 5.0
    assert render_seconds(0, 5.0) == 1.0
    assert render_seconds(3600, 5.0) == 60.0


def test_pixels_and_annotation_text():
    assert pixels("512") == 512
    assert pixels("largo") == 1024
    assert pixels(10_000) == 2048
    assert annotation_text("@/etc/passwd") == "/etc/passwd"
    assert annotation_text("100% natural") == "100%% natural"
    assert annotation_text("@@") == "seu projeto"


def test_image_render_never_passes_file_reference(local_media, renders):
    result = _generate("image", "@/etc/passwd campanha")
    assert result.success is True
    assert result.provider == "Local Image Renderer"
    command = renders.commands[0]
    annotate = command[command.index("-annotate") + 2]
    assert not annotate.startswith("@")
    assert result.url.startswith("/ai-content/ai_img_")


def test_video_duration_cannot_inject_filters(local_media, renders):
    result = _generate("video", "demo de produto", {"duration": "5:enable=0,movie=/etc/passwd"})
    assert result.success is True
    source = renders.commands[0][renders.commands[0].index("-i") + 1]
    assert source == "color=c=#374151:size=1280x720:duration=5"
    assert result.metadata["duration"] == 5.0


def test_audio_duration_is_clamped(local_media, renders):
    result = _generate("audio", "trilha calma", {"duration": 600})
    assert result.success is True
    source = renders.commands[0][renders.commands[0].index("-i") + 1]
    assert source == "sine=frequency=440:duration=60"


def test_missing_tools_are_reported(local_media, renders):
    renders.missing = True
    assert _generate("image", "logo").error == "ImageMagick not available"
    assert _generate("video", "clipe").error == "FFmpeg not available"
    assert _generate("audio", "jingle").error == "FFmpeg not available"


def test_failed_renders_are_reported(local_media, renders):
    renders.returncode = 1
    assert _generate("image", "logo").error == "Image generation failed"
    assert _generate("video", "clipe").error == "Video generation failed"
    assert _generate("audio", "jingle").error == "Audio generation failed"


def test_video_module_renders_with_default_duration(local_media, renders):
    async def inner():
        await init_db()
        try:
            return await execute_module(
                "ia-video", "vsl de emagrecimento", {"duration": "60 segundos", "style": "dinâmico"}
            )
        finally:
            await dispose_engine()

    result = asyncio.run(inner())
    assert result["media"]["provider"] == "Local Video Renderer"
    source = renders.commands[-1][renders.commands[-1].index("-i") + 1]
    assert source.endswith(":duration=5")
