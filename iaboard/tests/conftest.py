import pytest

from iaboard import settings as settings_module
from iaboard.core.token_manager import reset_token_manager
from iaboard.core.ws_manager import reset_ws_manager
from iaboard.llm.adapter import reset_llm_adapter
from iaboard.llm.cache import clear_cache
from iaboard.llm.concurrency import reset_llm_semaphore


def _reset_singletons():
    settings_module.get_settings.cache_clear()
    reset_llm_adapter()
    reset_llm_semaphore()
    reset_ws_manager()
    reset_token_manager()
    clear_cache()


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("DOWNLOADS_ROOT", str(tmp_path / "downloads"))
    monkeypatch.setenv("CONTENT_ROOT", str(tmp_path / "ai-content"))
    monkeypatch.setenv("LLM_MODE", "mock")
    monkeypatch.setenv("WORKFLOW_STEP_DELAY", "0")
    monkeypatch.setenv("ENABLE_LOCAL_MEDIA", "false")
    monkeypatch.setenv("ENABLE_WEB_SEARCH", "false")
    for key in (
        "ADMIN_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "GROQ_API_KEY",
        "STABILITY_API_KEY",
        "ELEVENLABS_API_KEY",
        "TYPEFORM_API_KEY",
        "MAILCHIMP_API_KEY",
        "MIXPANEL_TOKEN",
        "NOTION_API_KEY",
        "NOTION_PARENT_PAGE_ID",
        "ZAPIER_WEBHOOK_URL",
        "GOOGLE_API_KEY",
    ):
        monkeypatch.setenv(key, "")
    _reset_singletons()
    yield
    _reset_singletons()
