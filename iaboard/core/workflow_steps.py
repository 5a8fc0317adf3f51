from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from iaboard.llm.adapter import BaseLLMAdapter, get_llm_adapter
from iaboard.utils.json_parser import extract_json
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WorkflowStep(BaseModel):
    id: int
    title: str
    description: str
    icon: str
    connections: List[int] = Field(default_factory=list)
    prompt: str
    fallback: Dict[str, Any] = Field(default_factory=dict)


WORKFLOW_STEPS: List[WorkflowStep] = [
    WorkflowStep(
        id=1,
        title="Análise IA de Mercado",
        description="Pesquisa inteligente e análise competitiva",
        icon="brain",
        connections=[2, 3, 4, 5],
        prompt=(
            "Analise o mercado para um produto do tipo '{product_type}'. Retorne JSON com "
            "marketTrends (lista), marketSize, growthRate e opportunity."
        ),
        fallback={
            "marketTrends": ["Transformação Digital", "IA & Automação", "Educação Online"],
            "marketSize": "R$ 3.2 bilhões",
            "growthRate": "28% ao ano",
            "opportunity": "Alto potencial de crescimento",
        },
    ),
    WorkflowStep(
        id=2,
        title="Público-Alvo",
        description="Identificação precisa do público ideal",
        icon="target",
        connections=[6, 7],
        prompt=(
            "Defina o público-alvo de um produto '{product_type}'. Retorne JSON com "
            "primaryAudience, demographics, painPoints (lista) e behavior."
        ),
        fallback={
            "primaryAudience": "Empreendedores 25-45 anos",
            "demographics": "Renda média-alta, digitalmente ativos",
            "painPoints": ["Falta de sistemas", "Baixa conversão", "Competição acirrada"],
            "behavior": "Busca soluções práticas e resultados rápidos",
        },
    ),
    WorkflowStep(
        id=3,
        title="Estratégia de Produto",
        description="Otimização da oferta principal",
        icon="rocket",
        connections=[6, 7],
        prompt=(
            "Crie a estratégia de produto para '{product_type}'. Retorne JSON com "
            "productPosition, priceRange, uniqueValue e competitors (número)."
        ),
        fallback={
            "productPosition": "Premium com garantia de resultados",
            "priceRange": "R$ 497 - R$ 1.997",
            "uniqueValue": "IA personalizada + suporte humanizado",
            "competitors": 3,
        },
    ),
    WorkflowStep(
        id=4,
        title="Análise Competitiva",
        description="Estudo detalhado da concorrência",
        icon="users",
        connections=[8, 9],
        prompt=(
            "Faça a análise competitiva para '{product_type}'. Retorne JSON com "
            "competitorCount, weaknesses (lista), opportunities (lista) e marketGap."
        ),
        fallback={
            "competitorCount": 12,
            "weaknesses": ["UX complexa", "Preço elevado", "Suporte limitado"],
            "opportunities": ["IA avançada", "Personalização", "Comunidade ativa"],
            "marketGap": "Soluções personalizadas com IA",
        },
    ),
    WorkflowStep(
        id=5,
        title="Projeção de ROI",
        description="Estimativa de resultados e conversão",
        icon="trending-up",
        connections=[8, 9],
        prompt=(
            "Projete o ROI de '{product_type}'. Retorne JSON com expectedConversion, "
            "projectedRevenue, timeToProfit e roi."
        ),
        fallback={
            "expectedConversion": "22-35%",
            "projectedRevenue": "R$ 85k-250k/mês",
            "timeToProfit": "45-60 dias",
            "roi": "340% em 12 meses",
        },
    ),
    WorkflowStep(
        id=6,
        title="Copy Persuasivo",
        description="Textos otimizados para conversão",
        icon="file-text",
        connections=[10],
        prompt=(
            "Planeje os ativos de copy para '{product_type}'. Retorne JSON com headlines, "
            "salesPages, emailSubjects, copyVariations e ctas (quantidades)."
        ),
        fallback={
            "headlines": 15,
            "salesPages": 3,
            "emailSubjects": 21,
            "copyVariations": 8,
            "ctas": 12,
        },
    ),
    WorkflowStep(
        id=7,
        title="VSL Profissional",
        description="Video Sales Letter de alta conversão",
        icon="video",
        connections=[10],
        prompt=(
            "Planeje uma VSL para '{product_type}'. Retorne JSON com duration, scripts, "
            "format, scenes e callToActions."
        ),
        fallback={
            "duration": "8-12 minutos",
            "scripts": "Roteiro completo + variations",
            "format": "MP4 Full HD + mobile",
            "scenes": 12,
            "callToActions": 5,
        },
    ),
    WorkflowStep(
        id=8,
        title="Email Marketing",
        description="Sequência automatizada de follow-up",
        icon="mail",
        connections=[10],
        prompt=(
            "Planeje a sequência de email marketing para '{product_type}'. Retorne JSON com "
            "emailSequence, automationRules, segmentation e expectedOpenRate."
        ),
        fallback={
            "emailSequence": 14,
            "automationRules": 8,
            "segmentation": "Comportamental + demográfica",
            "expectedOpenRate": "42-55%",
        },
    ),
    WorkflowStep(
        id=9,
        title="Landing Pages",
        description="Páginas de alta conversão",
        icon="download",
        connections=[10],
        prompt=(
            "Planeje as landing pages para '{product_type}'. Retorne JSON com landingPages, "
            "mobileOptimized, loadSpeed e conversionElements."
        ),
        fallback={
            "landingPages": 4,
            "mobileOptimized": True,
            "loadSpeed": "< 1.5 segundos",
            "conversionElements": 18,
        },
    ),
    WorkflowStep(
        id=10,
        title="Produto Finalizado",
        description="Compilação e exportação completa",
        icon="check-circle",
        connections=[],
        prompt=(
            "Resuma o produto final '{product_type}'. Retorne JSON com totalAssets, "
            "readyToLaunch, estimatedValue e completionRate."
        ),
        fallback={
            "totalAssets": 156,
            "readyToLaunch": True,
            "estimatedValue": "R$ 25.000+",
            "completionRate": "100%",
        },
    ),
]

_STEPS_BY_ID: Dict[int, WorkflowStep] = {step.id: step for step in WORKFLOW_STEPS}


def get_step(step_id: int) -> Optional[WorkflowStep]:
    return _STEPS_BY_ID.get(step_id)


def fallback_for(step_id: int) -> Dict[str, Any]:
    step = get_step(step_id)
    if step is None:
        return {"status": "processed", "timestamp": datetime.now(timezone.utc).isoformat()}
    return dict(step.fallback)


def _context_excerpt(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    text = json.dumps(context, ensure_ascii=False, default=str)
    return text[:2000]


async def process_step(
    step_id: int,
    product_type: str,
    context: Optional[Dict[str, Any]] = None,
    *,
    adapter: Optional[BaseLLMAdapter] = None,
) -> Dict[str, Any]:
    """Runs one step through the LLM; returns ``{stepId, data, source}``.

    ``source`` is ``"ai"`` when the model produced usable JSON and
    ``"fallback"`` otherwise.
    """
    step = get_step(step_id)
    if step is None:
        LOGGER.warning("Unknown workflow step %s, using generic fallback", step_id)
        return {"stepId": step_id, "data": fallback_for(step_id), "source": "fallback"}

    prompt = step.prompt.format(product_type=product_type or "produto digital")
    excerpt = _context_excerpt(context)
    if excerpt:
        prompt += f"\n\nContexto das etapas anteriores:\n{excerpt}"

    try:
        llm = adapter or get_llm_adapter()
        raw = await llm.acomplete(prompt, json_mode=True)
        data = extract_json(raw)
    except Exception as exc:
        LOGGER.warning("Step %s LLM call failed, using fallback: %s", step_id, exc)
        data = {}

    if not data:
        return {"stepId": step_id, "data": fallback_for(step_id), "source": "fallback"}
    return {"stepId": step_id, "data": data, "source": "ai"}
