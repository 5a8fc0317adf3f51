from __future__ import annotations

import html
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from iaboard.core.generator import ContentGenerator
from iaboard.utils import fileutils
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AIModule(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    system_prompt: str
    output: str = Field(default="text")  # text, video, audio
    file_prefix: str
    estimated_time: str = Field(default="30s")
    max_tokens: int = Field(default=1500)
    defaults: Dict[str, str] = Field(default_factory=dict)


def _copy_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie copy persuasivo completo para: {prompt}.\n"
        f"Nicho: {p['niche']}\nPúblico: {p['targetAudience']}\nObjetivo: {p['objective']}\n\n"
        "Inclua: headlines magnéticos, bullets irresistíveis, prova social, CTAs poderosos, "
        "ofertas irresistíveis com urgência e escassez."
    )


def _product_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie ficha técnica completa do produto: {prompt}\n"
        f"Mercado: {p['market']}\nOrçamento: {p['budget']}\nTimeline: {p['timeline']}\n\n"
        "Inclua: análise de mercado, especificações técnicas, diferenciais competitivos, "
        "estratégia de preços, plano de lançamento, projeções financeiras."
    )


def _traffic_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie estratégia completa de tráfego pago para: {prompt}\n"
        f"Orçamento: {p['budget']}\nObjetivos: {p['goals']}\nPlataformas: {p['platforms']}\n\n"
        "Inclua: segmentação detalhada, distribuição de orçamento, criativos vencedores, KPIs, "
        "cronograma de execução, estratégias de remarketing."
    )


def _video_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie roteiro detalhado para vídeo: {prompt}\n"
        f"Duração: {p['duration']}\nEstilo: {p['style']}\nObjetivo: {p['objective']}\n\n"
        "Inclua: hook inicial, desenvolvimento, call-to-action, descrições visuais, timing."
    )


def _voice_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Escreva um roteiro de locução ({p['tone']}) para: {prompt}\n"
        "Frases curtas, ritmo natural para leitura em voz alta, com chamada para ação no final."
    )


def _analytics_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Analise o desempenho de marketing de: {prompt}\nPeríodo: {p['period']}\n\n"
        "Inclua: KPIs principais, gargalos do funil, hipóteses de otimização, testes A/B "
        "recomendados e metas para os próximos 30 dias."
    )


def _document_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie um documento profissional do tipo '{p['type']}' sobre: {prompt}\n"
        "Estruture com título, sumário executivo, seções numeradas e conclusão."
    )


def _total_prompt(prompt: str, p: Dict[str, Any]) -> str:
    return (
        f"Crie o plano de lançamento completo para: {prompt}\n\n"
        "Inclua: posicionamento, público-alvo, oferta, copy da página de vendas, roteiro de VSL, "
        "sequência de 5 emails, estratégia de tráfego e projeção de ROI."
    )


AI_MODULES: List[AIModule] = [
    AIModule(
        id="ia-copy",
        name="IA Copy",
        description="Headlines e copy persuasivo de alta conversão",
        icon="pen-tool",
        category="conteudo",
        system_prompt=(
            "Você é um copywriter mundial especialista em vendas com 20 anos de experiência. "
            "Crie copy persuasivo de alta conversão em português brasileiro."
        ),
        file_prefix="copy",
        defaults={"niche": "marketing digital", "targetAudience": "empreendedores", "objective": "conversão"},
    ),
    AIModule(
        id="ia-produto",
        name="IA Produto",
        description="Ficha técnica e estratégia de lançamento de produto",
        icon="package",
        category="estrategia",
        system_prompt=(
            "Você é um consultor de produtos digitais com 15 anos de experiência em lançamentos "
            "de sucesso. Crie estratégias detalhadas e implementáveis."
        ),
        file_prefix="produto",
        estimated_time="45s",
        defaults={"market": "digital", "budget": "R$ 50.000", "timeline": "3 meses"},
    ),
    AIModule(
        id="ia-trafego",
        name="IA Tráfego",
        description="Estratégias de tráfego pago com foco em ROI",
        icon="trending-up",
        category="trafego",
        system_prompt=(
            "Você é um especialista em tráfego pago com certificações Google e Meta, "
            "especializado em ROI e performance marketing."
        ),
        file_prefix="trafego",
        max_tokens=3000,
        defaults={
            "budget": "R$ 10.000/mês",
            "goals": "gerar leads qualificados",
            "platforms": "Google, Facebook, LinkedIn",
        },
    ),
    AIModule(
        id="ia-video",
        name="IA Vídeo",
        description="Roteiros de vídeo e VSL com render de prévia",
        icon="video",
        category="midia",
        system_prompt=(
            "Você é um roteirista especialista em vídeos virais e de conversão. "
            "Crie roteiros envolventes e detalhados."
        ),
        output="video",
        file_prefix="video-roteiro",
        estimated_time="60s",
        defaults={"duration": "5 segundos", "style": "profissional", "objective": "vendas"},
    ),
    AIModule(
        id="ia-voz",
        name="IA Voz",
        description="Roteiro de locução e síntese de voz",
        icon="mic",
        category="midia",
        system_prompt="Você é um redator de locuções publicitárias para rádio e podcast.",
        output="audio",
        file_prefix="audio-roteiro",
        max_tokens=800,
        defaults={"tone": "confiante e amigável"},
    ),
    AIModule(
        id="ia-analytics",
        name="IA Analytics",
        description="Diagnóstico de métricas e otimização de funil",
        icon="bar-chart",
        category="analise",
        system_prompt="Você é um analista de growth marketing orientado a dados.",
        file_prefix="analytics",
        defaults={"period": "últimos 30 dias"},
    ),
    AIModule(
        id="ia-documento",
        name="IA Documento",
        description="Documentos profissionais prontos para exportar",
        icon="file-text",
        category="conteudo",
        system_prompt="Você é um redator técnico que produz documentos claros e bem estruturados.",
        file_prefix="documento",
        defaults={"type": "Documento IA"},
    ),
    AIModule(
        id="ia-total",
        name="IA Total",
        description="Todos os módulos em um plano de lançamento completo",
        icon="zap",
        category="completo",
        system_prompt=(
            "Você é um estrategista de lançamentos digitais que domina copy, tráfego, "
            "produto e vídeo. Responda em português brasileiro."
        ),
        file_prefix="ia-total",
        estimated_time="90s",
        max_tokens=4000,
    ),
]

_PROMPT_BUILDERS: Dict[str, Callable[[str, Dict[str, Any]], str]] = {
    "ia-copy": _copy_prompt,
    "ia-produto": _product_prompt,
    "ia-trafego": _traffic_prompt,
    "ia-video": _video_prompt,
    "ia-voz": _voice_prompt,
    "ia-analytics": _analytics_prompt,
    "ia-documento": _document_prompt,
    "ia-total": _total_prompt,
}

_MODULES_BY_ID: Dict[str, AIModule] = {m.id: m for m in AI_MODULES}


def get_module(module_id: str) -> Optional[AIModule]:
    return _MODULES_BY_ID.get(module_id)


def build_prompt(module: AIModule, prompt: str, parameters: Optional[Dict[str, Any]] = None) -> str:
    merged = {**module.defaults, **{k: v for k, v in (parameters or {}).items() if v}}
    return _PROMPT_BUILDERS[module.id](prompt, merged)


def render_html(module: AIModule, content: str) -> str:
    body = html.escape(content).replace("\n", "<br>")
    created = datetime.now().strftime("%d/%m/%Y")
    return f"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(module.name)} - IA Board</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }}
        .header {{ text-align: center; background: #FF1639; color: white; padding: 20px; border-radius: 10px; }}
        .content {{ margin: 20px 0; line-height: 1.6; }}
        .cta {{ background: #FF1639; color: white; padding: 15px 30px; text-align: center; border-radius: 5px; margin: 20px 0; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>{html.escape(module.name)} - Gerado por IA Board</h1>
        <p>Criado em {created}</p>
    </div>
    <div class="content">
        {body}
    </div>
    <div class="cta">
        <strong>Gerado por IA Board - A revolução do marketing digital</strong>
    </div>
</body>
</html>"""


async def execute_module(
    module_id: str,
    prompt: str,
    parameters: Optional[Dict[str, Any]] = None,
    *,
    generator: Optional[ContentGenerator] = None,
) -> Dict[str, Any]:
    """Runs a catalog module and writes its HTML deliverable to downloads.

    Raises KeyError for an unknown module and ValueError for an empty prompt.
    """
    module = get_module(module_id)
    if module is None:
        raise KeyError(module_id)
    if not (prompt or "").strip():
        raise ValueError("Prompt é obrigatório")

    parameters = parameters or {}
    generator = generator or ContentGenerator()
    full_prompt = build_prompt(module, prompt, parameters)
    LOGGER.info("Executing module %s", module.id)

    text = await generator.generate(
        "text",
        full_prompt,
        {"systemPrompt": module.system_prompt, "maxTokens": module.max_tokens},
    )
    if not text.success:
        return {
            "success": False,
            "status": "error",
            "moduleId": module.id,
            "error": text.error or "Erro ao gerar conteúdo",
        }

    filename = f"{module.file_prefix}-{fileutils.timestamp_ms()}.html"
    fileutils.write_download(filename, render_html(module, text.content or ""))

    result: Dict[str, Any] = {
        "success": True,
        "status": "completed",
        "moduleId": module.id,
        "result": text.content,
        "content": text.content,
        "file": {"name": filename, "url": f"/downloads/{filename}", "type": "html"},
        "metadata": {
            "provider": text.provider,
            "module": module.name,
            **text.metadata,
        },
    }

    if module.output in ("video", "audio"):
        media_prompt = prompt if module.output == "video" else (text.content or prompt)
        # module parameters only shape the prompt
        media = await generator.generate(module.output, media_prompt)
        if media.success:
            result["media"] = {"url": media.url, "type": module.output, "provider": media.provider}
        else:
            LOGGER.info("Media render skipped for %s: %s", module.id, media.error)
            result["metadata"]["mediaError"] = media.error

    return result


async def execute_suprema(
    module_id: str, prompt: str, parameters: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Compact envelope used by the Suprema canvas cards."""
    try:
        outcome = await execute_module(module_id, prompt, parameters)
    except KeyError:
        return {
            "success": False,
            "moduleId": module_id,
            "status": "error",
            "content": None,
            "metadata": {"error": "Módulo não encontrado"},
        }
    return {
        "success": outcome["success"],
        "moduleId": module_id,
        "status": outcome["status"],
        "content": outcome.get("content"),
        "metadata": {
            **outcome.get("metadata", {}),
            "file": outcome.get("file"),
            "executedAt": datetime.now().isoformat(),
        },
    }
