from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from iaboard.core.generator import CONTENT_TYPES, ContentGenerator
from iaboard.core.modules import execute_module, execute_suprema, get_module
from iaboard.core.workflow_steps import process_step
from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger
from iaboard.utils.schemas import (
    ExecuteRequest,
    GenerateRequest,
    LLMGenerateRequest,
    ModuleExecuteRequest,
    ProcessStepRequest,
    SupremaExecuteRequest,
)

router = APIRouter(tags=["ai"])
LOGGER = get_logger(__name__)

MARKETING_PREFIX = "Como assistente de IA especializado em marketing digital: "


def _error(message: str, code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=code, content={"success": False, "error": message})


@router.post("/api/ai/generate")
async def generate(payload: GenerateRequest):
    if not payload.type or not payload.prompt.strip():
        return _error("Type and prompt are required")
    if payload.type not in CONTENT_TYPES:
        return _error("Unsupported content type")

    result = await ContentGenerator().generate(payload.type, payload.prompt, payload.parameters)
    if not result.success:
        return _error(result.error or "AI generation failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return result.to_dict()


@router.post("/api/ai/execute")
async def execute(payload: ExecuteRequest):
    if not payload.prompt.strip():
        return _error("Prompt é obrigatório")

    result = await ContentGenerator().generate(
        "text",
        MARKETING_PREFIX + payload.prompt,
        {"maxTokens": 2000, "temperature": 0.7, **payload.parameters},
    )
    if not result.success:
        return _error(result.error or "AI execution failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {
        "success": True,
        "result": result.content,
        "content": result.content,
        "metadata": {
            "module": payload.module,
            "prompt": payload.prompt,
            "provider": result.provider,
            "generated": True,
        },
    }


@router.post("/api/ai/module/execute")
async def module_execute(payload: ModuleExecuteRequest):
    if not payload.module or not payload.prompt.strip():
        return _error("Module and prompt are required")

    if get_module(payload.module) is not None:
        outcome = await execute_module(payload.module, payload.prompt, payload.parameters)
        if not outcome["success"]:
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=outcome)
        return outcome

    result = await ContentGenerator().generate(
        "text", MARKETING_PREFIX + payload.prompt, {"maxTokens": 2000, "temperature": 0.7}
    )
    if not result.success:
        return _error(result.error or "Execution failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {
        "success": True,
        "status": "completed",
        "content": result.content,
        "metadata": {**result.metadata, "module": payload.module, "provider": result.provider},
    }


@router.post("/api/ai/process-step")
async def process_workflow_step(payload: ProcessStepRequest) -> Dict[str, Any]:
    outcome = await process_step(payload.stepId, payload.productType, payload.context)
    return {"success": True, **outcome}


def _suprema_prompt(payload: SupremaExecuteRequest) -> str:
    if payload.prompt and payload.prompt.strip():
        return payload.prompt
    data = payload.projectData
    parts = [str(data[key]) for key in ("name", "title", "description", "niche", "product") if data.get(key)]
    return " - ".join(parts)


@router.post("/api/ai/suprema/execute-module")
async def suprema_execute(payload: SupremaExecuteRequest):
    prompt = _suprema_prompt(payload)
    if not prompt:
        return _error("Prompt é obrigatório")
    outcome = await execute_suprema(payload.moduleId, prompt, payload.projectData)
    if payload.learningMode:
        outcome["metadata"]["learningMode"] = True
    return outcome


@router.post("/api/llm/generate")
async def llm_generate(payload: LLMGenerateRequest):
    system = "\n".join(m.content for m in payload.messages if m.role == "system") or None
    prompt = payload.prompt or "\n\n".join(m.content for m in payload.messages if m.role != "system")
    if not prompt.strip():
        return _error("Prompt is required")

    result = await ContentGenerator().generate(
        "text",
        prompt,
        {"systemPrompt": system, "maxTokens": payload.max_tokens, "temperature": payload.temperature},
    )
    if not result.success:
        return _error(result.error or "LLM generation failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {
        "success": True,
        "content": result.content,
        "provider": result.provider,
        "model": payload.model,
        "metadata": result.metadata,
    }


@router.get("/api/ai/health")
async def ai_health() -> Dict[str, Any]:
    settings = get_settings()
    providers = {
        "openai": bool(settings.openai_api_key),
        "anthropic": bool(settings.anthropic_api_key),
        "groq": bool(settings.groq_api_key),
        "stability": bool(settings.stability_api_key),
        "elevenlabs": bool(settings.elevenlabs_api_key),
        "typeform": bool(settings.typeform_api_key),
        "mailchimp": bool(settings.mailchimp_api_key),
        "mixpanel": bool(settings.mixpanel_token),
        "notion": bool(settings.notion_api_key),
        "youtube": bool(settings.google_api_key),
        "automation": bool(settings.zapier_webhook_url),
        "templates": True,
    }
    return {
        "success": True,
        "llmMode": settings.llm_mode,
        "providers": providers,
        "timestamp": datetime.utcnow().isoformat(),
    }
