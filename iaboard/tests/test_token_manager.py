import httpx
import pytest
from fastapi.testclient import TestClient

from iaboard import settings as settings_module
from iaboard.api import media
from iaboard.core.token_manager import WINDOW_SECONDS, TokenManager, get_token_manager
from iaboard.main import app
from iaboard.media.elevenlabs import ElevenLabsService
from iaboard.utils.errors import QuotaExceededError


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_budget_is_spent_and_reset_after_an_hour():
    clock = FakeClock()
    manager = TokenManager(clock=clock)

    for _ in range(50):
        assert manager.use_token("fal") is True
    assert manager.use_token("fal") is False
    assert manager.can_use("fal") is False
    assert "fal" not in manager.available_services()

    clock.now += WINDOW_SECONDS
    assert manager.can_use("fal") is True
    assert manager.status("fal")["tokensLeft"] == 50


def test_unknown_service_is_never_available():
    manager = TokenManager()
    assert manager.use_token("mystery") is False
    assert manager.status("mystery") == {"available": False, "tokensLeft": 0, "resetTime": "Unknown"}
    # untracked services are not rate limited
    manager.consume("mock")


def test_consume_raises_with_reset_time():
    manager = TokenManager(clock=FakeClock(0.0))
    for _ in range(100):
        manager.consume("stability")
    with pytest.raises(QuotaExceededError) as exc:
        manager.consume("stability")
    assert exc.value.service == "stability"
    assert exc.value.reset_time == "1970-01-01T01:00:00+00:00"


def test_status_lists_every_tracked_service():
    status = TokenManager().all_status()
    assert set(status) == {
        "huggingface", "replicate", "gradio", "fal", "openai", "anthropic", "stability", "elevenlabs"
    }
    assert status["replicate"]["endpoint"] == "https://api.replicate.com"


def test_media_routes_require_vendor_keys():
    with TestClient(app) as client:
        resp = client.post("/api/media/image", json={"prompt": "logo"})
        assert resp.status_code == 400
        assert resp.json()["provider"] == "stability"

        resp = client.post("/api/media/speech", json={"text": "olá"})
        assert resp.status_code == 400
        assert resp.json()["provider"] == "elevenlabs"

    # rejected calls do not spend budget
    assert get_token_manager().status("stability")["tokensLeft"] == 100


def test_exhausted_quota_returns_429(monkeypatch):
    monkeypatch.setenv("STABILITY_API_KEY", "sk-test")
    settings_module.get_settings.cache_clear()
    tokens = get_token_manager()
    while tokens.use_token("stability"):
        pass

    with TestClient(app) as client:
        resp = client.post("/api/media/image", json={"prompt": "logo"})
        assert resp.status_code == 429
        body = resp.json()
        assert body["success"] is False
        assert body["resetTime"] == tokens.status("stability")["resetTime"]


def test_speech_writes_audio_to_content_root(monkeypatch):
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-key")
    settings_module.get_settings.cache_clear()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["xi-api-key"] == "el-key"
        assert request.url.path == "/v1/text-to-speech/voz-1"
        return httpx.Response(200, content=b"ID3audio")

    monkeypatch.setitem(media.vendors, "elevenlabs", ElevenLabsService(transport=httpx.MockTransport(handler)))
    with TestClient(app) as client:
        resp = client.post("/api/media/speech", json={"text": "Bem-vindo", "voiceId": "voz-1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["provider"] == "ElevenLabs"
        assert body["metadata"]["characterCount"] == 9

        audio = client.get(body["url"])
        assert audio.content == b"ID3audio"
    assert get_token_manager().status("elevenlabs")["tokensLeft"] == 99


def test_image_dimensions_are_validated():
    with TestClient(app) as client:
        resp = client.post("/api/media/image", json={"prompt": "logo", "parameters": {"width": "largo"}})
        assert resp.status_code == 422
        resp = client.post("/api/media/image", json={"prompt": "logo", "parameters": {"height": 99999}})
        assert resp.status_code == 422
