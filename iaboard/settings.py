from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    data_root: Path = Field(default=Path(__file__).resolve().parents[1] / "data")
    downloads_root: Path = Field(default=Path(__file__).resolve().parents[1] / "public" / "downloads")
    content_root: Path = Field(default=Path(__file__).resolve().parents[1] / "public" / "ai-content")

    # "auto" walks the provider chain (anthropic -> openai -> groq) using whatever keys are set
    llm_mode: Literal["mock", "auto", "anthropic", "openai", "groq"] = Field(default="auto")

    openai_model: str = Field(default="gpt-4o")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    groq_model: str = Field(default="llama-3.3-70b-versatile")
    llm_max_tokens: int = Field(default=4000)

    llm_semaphore: int = Field(default=4)
    admin_api_key: Optional[str] = Field(default=None)

    # LLM keys
    openai_api_key: Optional[str] = Field(default=None)
    anthropic_api_key: Optional[str] = Field(default=None)
    groq_api_key: Optional[str] = Field(default=None)

    # Media vendors
    stability_api_key: Optional[str] = Field(default=None)
    elevenlabs_api_key: Optional[str] = Field(default=None)
    elevenlabs_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM")
    enable_local_media: bool = Field(default=True)

    # Marketing integrations
    typeform_api_key: Optional[str] = Field(default=None)
    mailchimp_api_key: Optional[str] = Field(default=None)
    mailchimp_server_prefix: str = Field(default="us17")
    mixpanel_token: Optional[str] = Field(default=None)
    notion_api_key: Optional[str] = Field(default=None)
    notion_parent_page_id: Optional[str] = Field(default=None)
    zapier_webhook_url: Optional[str] = Field(default=None)

    # YouTube analyzer
    google_api_key: Optional[str] = Field(default=None)
    youtube_segment_seconds: int = Field(default=60, ge=10, le=600)
    youtube_max_segments: int = Field(default=30, ge=1, le=200)

    # Workflow pacing between steps (seconds); the UI animates on these events
    workflow_step_delay: float = Field(default=1.0, ge=0.0, le=30.0)
    workflow_timeout: float = Field(default=600.0)

    # Market research for the first workflow step
    enable_web_search: bool = Field(default=False)
    max_search_results: int = Field(default=5, ge=1, le=10)

    root_env: ClassVar[str] = str(Path(__file__).resolve().parents[1] / ".env")

    model_config = {
        "env_file": root_env,
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.data_root.mkdir(parents=True, exist_ok=True)
    settings.downloads_root.mkdir(parents=True, exist_ok=True)
    settings.content_root.mkdir(parents=True, exist_ok=True)
    return settings
