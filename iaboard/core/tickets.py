"""Máquina Milionária ticket dispatcher.

Each ticket type owns a prompt, a companion file and the follow-up guidance
shown next to the AI answer. Any failure in the AI call degrades to the
canned fallback content for the type.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from iaboard.core.token_manager import get_token_manager
from iaboard.llm.adapter import BaseLLMAdapter, get_llm_adapter
from iaboard.utils.json_parser import extract_json
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

TICKET_TYPES = ("copy", "video", "funil", "estrategia", "campanha", "design", "analise")

FALLBACK_NEXT_STEPS = [
    "Implementar a solução criada",
    "Fazer testes A/B",
    "Monitorar resultados",
    "Otimizar baseado nos dados",
]
FALLBACK_ROI = "ROI estimado entre 200-500% com implementação adequada"


class TicketFile(BaseModel):
    nome: str
    tipo: str = "text"
    conteudo: str


class TicketResult(BaseModel):
    success: bool = True
    conteudo: str
    arquivos: List[TicketFile] = Field(default_factory=list)
    estrutura: Optional[Dict[str, Any]] = None
    proximosPassos: List[str] = Field(default_factory=list)
    estimativaROI: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TicketKind(BaseModel):
    role: str
    deliverable: str
    sections: List[Tuple[str, List[str]]]
    closing: str = ""
    response_file: str
    companion: Optional[Tuple[str, str]] = None
    next_steps: List[str]
    roi: str
    stages: List[str]


TICKET_KINDS: Dict[str, TicketKind] = {
    "copy": TicketKind(
        role="um copywriter experiente especializado em marketing digital",
        deliverable="Crie um copy completo e altamente persuasivo que inclua:",
        sections=[
            ("HEADLINES (3 opções diferentes)", [
                "Uma focada em urgência", "Uma focada em benefício", "Uma focada em dor/problema"]),
            ("COPY PRINCIPAL", [
                "Hook inicial poderoso", "Identificação com o problema", "Apresentação da solução",
                "Prova social/autoridade", "Oferta irresistível", "Call to action forte"]),
            ("ELEMENTOS VISUAIS SUGERIDOS", ["Cores recomendadas", "Imagens/videos sugeridos", "Layout proposto"]),
            ("TESTES A/B SUGERIDOS", []),
        ],
        closing=(
            "Formato de resposta em JSON:\n"
            '{"headlines": ["headline1", "headline2", "headline3"], "copy_principal": "copy completo aqui", '
            '"elementos_visuais": {}, "testes_ab": [], "cta": "call to action final"}'
        ),
        response_file="copy_completo.txt",
        next_steps=[
            "Implementar o copy na landing page",
            "Configurar testes A/B",
            "Monitorar métricas de conversão",
            "Otimizar baseado nos resultados",
        ],
        roi="Aumento estimado de 25-40% na conversão",
        stages=[
            "Análise do público-alvo",
            "Pesquisa de concorrentes",
            "Geração de headlines",
            "Desenvolvimento do copy",
            "Testes A/B sugeridos",
        ],
    ),
    "video": TicketKind(
        role="um especialista em Video Sales Letters (VSL) com anos de experiência",
        deliverable="Crie um roteiro completo de VSL que inclua:",
        sections=[
            ("ESTRUTURA NARRATIVA", [
                "Hook inicial (primeiros 15 segundos)", "História/problema", "Agitação da dor",
                "Apresentação da solução", "Prova social", "Oferta", "Call to action"]),
            ("ROTEIRO DETALHADO", [
                "Texto narrado", "Indicações visuais", "Música/efeitos sonoros", "Timing de cada seção"]),
            ("ELEMENTOS VISUAIS", ["Slides/imagens necessárias", "Gráficos e estatísticas", "Depoimentos em vídeo"]),
            ("OTIMIZAÇÕES", ["Pontos de retenção", "Momentos de conversão", "Variações para teste"]),
        ],
        closing="Duração recomendada: 10-15 minutos",
        response_file="roteiro_vsl.txt",
        companion=(
            "cronograma_producao.txt",
            "CRONOGRAMA DE PRODUÇÃO\n\nDia 1-2: Gravação do áudio\nDia 3-4: Criação dos slides\n"
            "Dia 5-6: Edição e finalização\nDia 7: Revisões e ajustes",
        ),
        next_steps=[
            "Gravar o áudio do roteiro",
            "Criar slides e elementos visuais",
            "Editar o vídeo completo",
            "Fazer testes de conversão",
        ],
        roi="VSLs convertem 3-5x mais que páginas de texto",
        stages=[
            "Analisando produto e mercado",
            "Gerando roteiro persuasivo",
            "Criando elementos visuais",
            "Renderizando video final",
            "Otimizando para conversão",
        ],
    ),
    "funil": TicketKind(
        role="um especialista em funis de vendas digitais",
        deliverable="Crie um funil de vendas completo que inclua:",
        sections=[
            ("MAPEAMENTO DA JORNADA", ["Consciência", "Interesse", "Consideração", "Decisão", "Retenção"]),
            ("ESTRUTURA DO FUNIL", [
                "Tráfego (fontes)", "Landing page de captura", "Lead magnet", "Sequência de emails",
                "Página de vendas", "Upsells/downsells", "Follow-up pós-venda"]),
            ("AUTOMAÇÕES", ["Triggers de comportamento", "Segmentações", "Personalizações"]),
            ("MÉTRICAS E KPIs", ["Taxa de conversão por etapa", "Lifetime value", "CAC (custo de aquisição)"]),
        ],
        closing="Detalhe cada etapa com textos e estratégias específicas.",
        response_file="estrutura_funil.txt",
        companion=(
            "sequencia_emails.txt",
            "SEQUÊNCIA DE EMAILS\n\nEmail 1: Boas-vindas e entrega do lead magnet\n"
            "Email 2: História pessoal e construção de autoridade\nEmail 3: Problema comum e agitação\n"
            "Email 4: Apresentação da solução\nEmail 5: Prova social e depoimentos\n"
            "Email 6: Oferta especial\nEmail 7: Última chance",
        ),
        next_steps=[
            "Configurar ferramentas de automação",
            "Criar todas as páginas do funil",
            "Implementar tracking e analytics",
            "Fazer testes A/B em cada etapa",
        ],
        roi="Funis otimizados podem gerar ROI de 300-500%",
        stages=[
            "Mapeamento da jornada do cliente",
            "Criação de lead magnets",
            "Desenvolvimento de sequência de emails",
            "Páginas de captura e vendas",
            "Automações e follow-ups",
        ],
    ),
    "estrategia": TicketKind(
        role="um consultor estratégico de marketing digital",
        deliverable="Desenvolva uma estratégia completa que inclua:",
        sections=[
            ("ANÁLISE DE MERCADO", ["Tamanho do mercado", "Concorrentes principais", "Oportunidades identificadas"]),
            ("PÚBLICO-ALVO", ["Personas detalhadas", "Jornada do cliente", "Pontos de dor"]),
            ("POSICIONAMENTO", ["Proposta de valor única", "Diferenciação", "Messaging strategy"]),
            ("MIX DE MARKETING", ["Canais de aquisição", "Conteúdo estratégico", "Cronograma de ações"]),
            ("PLANO DE IMPLEMENTAÇÃO", ["Fases do projeto", "Recursos necessários", "Timeline detalhado"]),
            ("MÉTRICAS E METAS", ["KPIs principais", "Metas 30/60/90 dias"]),
        ],
        response_file="estrategia_completa.txt",
        companion=(
            "cronograma_90_dias.txt",
            "CRONOGRAMA 90 DIAS\n\n0-30 dias: Estruturação e setup\n31-60 dias: Implementação e testes\n"
            "61-90 dias: Otimização e escalonamento",
        ),
        next_steps=[
            "Validar estratégia com stakeholders",
            "Alocar recursos e equipe",
            "Iniciar implementação fase 1",
            "Monitorar métricas semanalmente",
        ],
        roi="Estratégias bem executadas geram ROI de 400-800%",
        stages=[
            "Análise de mercado completa",
            "Definição de personas",
            "Estratégias de posicionamento",
            "Plano de ação detalhado",
            "Métricas e KPIs",
        ],
    ),
    "campanha": TicketKind(
        role="um especialista em campanhas de marketing digital",
        deliverable="Crie uma campanha completa que inclua:",
        sections=[
            ("CONCEITO CRIATIVO", ["Tema central", "Storytelling", "Elementos visuais"]),
            ("MULTI-CANAL", ["Facebook/Instagram Ads", "Google Ads", "Email marketing", "Organic social"]),
            ("CRIATIVOS", ["Copies para anúncios", "Imagens/vídeos necessários", "Landing pages"]),
            ("SEGMENTAÇÃO", ["Audiences principais", "Lookalikes", "Remarketing"]),
            ("ORÇAMENTO E BIDDING", ["Distribuição por canal", "Estratégias de lance", "Otimizações"]),
            ("CRONOGRAMA", ["Pré-lançamento", "Lançamento", "Otimização", "Escalonamento"]),
        ],
        response_file="campanha_completa.txt",
        companion=(
            "criativos_facebook.txt",
            "CRIATIVOS FACEBOOK ADS\n\nCriativo 1: Vídeo testimonial\nCriativo 2: Carrossel de benefícios\n"
            "Criativo 3: Imagem com copy direto\nCriativo 4: Stories interativo",
        ),
        next_steps=[
            "Criar contas publicitárias",
            "Desenvolver criativos",
            "Configurar tracking",
            "Lançar campanhas piloto",
        ],
        roi="Campanhas otimizadas: ROAS de 4:1 a 8:1",
        stages=[
            "Definição de objetivos",
            "Segmentação de público",
            "Criação de materiais",
            "Configuração de campanhas",
            "Otimização e monitoramento",
        ],
    ),
    "design": TicketKind(
        role="um designer especializado em conversão",
        deliverable="Crie um conceito de design que inclua:",
        sections=[
            ("IDENTIDADE VISUAL", ["Paleta de cores", "Tipografia", "Estilo visual"]),
            ("LAYOUTS", ["Landing pages", "Anúncios", "Email templates", "Social media"]),
            ("ELEMENTOS DE CONVERSÃO", ["CTAs destacados", "Prova social visual", "Elementos de urgência"]),
            ("GUIDELINES", ["Manual de marca", "Especificações técnicas", "Variações aprovadas"]),
        ],
        closing="Foque em design que converte, não apenas bonito.",
        response_file="conceito_design.txt",
        companion=(
            "paleta_cores.txt",
            "PALETA DE CORES\n\nPrimária: #FF6B35 (Laranja vibrante)\nSecundária: #004E89 (Azul confiança)\n"
            "Acento: #FFD23F (Amarelo urgência)\nNeutro: #2D3748 (Cinza escuro)\nFundo: #F7FAFC (Branco suave)",
        ),
        next_steps=[
            "Criar mockups detalhados",
            "Desenvolver protótipos",
            "Fazer testes de usabilidade",
            "Implementar designs finais",
        ],
        roi="Design otimizado aumenta conversão em 15-30%",
        stages=[
            "Análise de identidade visual",
            "Criação de conceitos",
            "Desenvolvimento de layouts",
            "Refinamento e ajustes",
            "Entrega final",
        ],
    ),
    "analise": TicketKind(
        role="um analista de dados especializado em marketing",
        deliverable="Faça uma análise completa que inclua:",
        sections=[
            ("ANÁLISE DE MERCADO", ["Tamanho e crescimento", "Principais players", "Tendências identificadas"]),
            ("ANÁLISE COMPETITIVA", ["Benchmarking", "Gaps de oportunidade", "Estratégias dos concorrentes"]),
            ("ANÁLISE DE PÚBLICO", ["Demografia", "Comportamentos online", "Jornada de compra"]),
            ("ANÁLISE DE PERFORMANCE", ["Métricas atuais", "Benchmarks da indústria", "Oportunidades de melhoria"]),
            ("RECOMENDAÇÕES", ["Ações prioritárias", "Quick wins", "Estratégias de longo prazo"]),
        ],
        closing="Use dados reais sempre que possível.",
        response_file="analise_completa.txt",
        companion=(
            "dashboard_metricas.txt",
            "DASHBOARD DE MÉTRICAS\n\nTráfego: Sessions, Users, Bounce Rate\nConversão: CVR, CPA, LTV\n"
            "Engajamento: Time on Site, Pages/Session\nROI: ROAS, Revenue, Profit Margin",
        ),
        next_steps=[
            "Implementar tracking avançado",
            "Criar dashboards automatizados",
            "Definir metas por métrica",
            "Agendar revisões semanais",
        ],
        roi="Análises orientam otimizações com ROI de 200-400%",
        stages=[
            "Coleta de dados",
            "Processamento de informações",
            "Análise de padrões",
            "Geração de insights",
            "Relatório final",
        ],
    ),
}


def _fallback_content(tipo: str, titulo: str) -> Tuple[str, TicketFile]:
    if tipo == "video":
        return (
            f"ROTEIRO VSL PARA: {titulo}\n\n"
            "[SEGUNDOS 0-15: HOOK]\n\"Se você tem 10 minutos, vou te mostrar como [benefício principal]\"\n\n"
            "[SEGUNDOS 15-60: PROBLEMA]\nTalvez você já tenha tentado...\nE descobriu que não funciona...\n"
            "Eu entendo sua frustração...\n\n"
            "[MINUTO 1-3: AGITAÇÃO]\nEnquanto você continua tentando métodos que não funcionam...\n"
            "Outras pessoas estão obtendo resultados reais...\n\n"
            f"[MINUTO 3-8: SOLUÇÃO]\nDescubra {titulo}\nO método que mudou tudo...\n\n"
            "[MINUTO 8-10: PROVA]\nVeja os resultados...\nDepoimentos reais...\n\n"
            "[MINUTO 10-12: OFERTA]\nPor apenas hoje...\nOferta especial...\n\n"
            "[MINUTO 12-15: CTA]\nClique no botão agora...\nNão perca esta oportunidade...",
            TicketFile(
                nome="roteiro_vsl.txt",
                conteudo="Roteiro completo com timing, texto narrado e indicações visuais.",
            ),
        )
    if tipo == "funil":
        return (
            f"FUNIL COMPLETO PARA: {titulo}\n\n"
            "🎯 ETAPA 1: TRÁFEGO\n- Facebook Ads\n- Google Ads\n- Conteúdo orgânico\n\n"
            "📋 ETAPA 2: CAPTURA\n- Landing page otimizada\n- Lead magnet irresistível\n- Formulário simples\n\n"
            "📧 ETAPA 3: NUTRIÇÃO\n- Sequência de 7 emails\n- Conteúdo de valor\n- Construção de autoridade\n\n"
            "💰 ETAPA 4: CONVERSÃO\n- Página de vendas\n- Oferta irresistível\n- Garantia forte\n\n"
            "🔄 ETAPA 5: RETENÇÃO\n- Follow-up pós-venda\n- Upsells\n- Programa de fidelidade",
            TicketFile(
                nome="estrutura_funil.txt",
                conteudo="Funil completo com todas as etapas, páginas e automações necessárias.",
            ),
        )
    return (
        f"COPY INTELIGENTE PARA: {titulo}\n\n"
        "🔥 HEADLINE PRINCIPAL:\n\"Descubra o Método Que Está Transformando Vidas e Gerando Resultados "
        "Extraordinários\"\n\n"
        "💰 COPY PERSUASIVO:\nVocê já se perguntou por que algumas pessoas conseguem resultados "
        "extraordinários enquanto outras ficam para trás?\n\nA diferença está no MÉTODO.\n\n"
        f"Apresento {titulo} - a solução que você estava procurando.\n\n"
        "✅ Resultados comprovados\n✅ Método testado\n✅ Suporte completo\n\n"
        "🚀 CALL TO ACTION:\n\"QUERO COMEÇAR AGORA E TRANSFORMAR MEUS RESULTADOS!\"",
        TicketFile(
            nome="copy_inteligente.txt",
            conteudo="Copy completo com headlines, body copy e call to action otimizados para conversão.",
        ),
    )


def fallback_result(tipo: str, titulo: str) -> TicketResult:
    content, file = _fallback_content(tipo, titulo)
    return TicketResult(
        conteudo=content,
        arquivos=[file],
        proximosPassos=list(FALLBACK_NEXT_STEPS),
        estimativaROI=FALLBACK_ROI,
        metadata={"tipo": tipo, "fallback": True},
    )


def build_prompt(kind: TicketKind, titulo: str, descricao: str) -> str:
    lines = [f"Você é {kind.role}.", "", f"PROJETO: {titulo}", f"DESCRIÇÃO: {descricao}", "", kind.deliverable, ""]
    for number, (heading, items) in enumerate(kind.sections, start=1):
        lines.append(f"{number}. {heading}:" if items else f"{number}. {heading}")
        lines.extend(f"- {item}" for item in items)
        lines.append("")
    if kind.closing:
        lines.append(kind.closing)
    return "\n".join(lines).strip()


def processing_stages(tipo: str) -> List[str]:
    kind = TICKET_KINDS.get(tipo) or TICKET_KINDS["copy"]
    return list(kind.stages)


def _as_text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, indent=2)


def _copy_files(kind: TicketKind, response: str) -> Tuple[List[TicketFile], Dict[str, Any]]:
    estrutura = extract_json(response)
    headlines = estrutura.get("headlines")
    if not isinstance(headlines, list):
        headlines = []
    arquivos = [
        TicketFile(nome=kind.response_file, conteudo=_as_text(estrutura.get("copy_principal"), response)),
        TicketFile(
            nome="headlines.txt",
            conteudo="\n\n".join(_as_text(h, "") for h in headlines).strip() or "Headlines não disponíveis",
        ),
    ]
    return arquivos, estrutura


async def process_ticket(
    tipo: str,
    titulo: str,
    descricao: str,
    *,
    adapter: Optional[BaseLLMAdapter] = None,
) -> TicketResult:
    kind = TICKET_KINDS.get(tipo)
    if kind is None:
        LOGGER.info("Unknown ticket type %s, using fallback", tipo)
        return fallback_result(tipo, titulo)

    try:
        llm = adapter or get_llm_adapter()
        response, provider = await llm.acomplete_with_provider(
            build_prompt(kind, titulo, descricao), max_tokens=4000
        )
        if not response.strip():
            raise ValueError("Empty AI response")

        estrutura: Optional[Dict[str, Any]] = None
        if tipo == "copy":
            arquivos, estrutura = _copy_files(kind, response)
        else:
            arquivos = [TicketFile(nome=kind.response_file, conteudo=response)]
            if kind.companion:
                arquivos.append(TicketFile(nome=kind.companion[0], conteudo=kind.companion[1]))

        result = TicketResult(
            conteudo=response,
            arquivos=arquivos,
            estrutura=estrutura,
            proximosPassos=list(kind.next_steps),
            estimativaROI=kind.roi,
            metadata={"tipo": tipo, "provider": provider, "fallback": False},
        )
    except Exception as exc:
        LOGGER.warning("Ticket %s (%s) failed, using fallback: %s", titulo, tipo, exc)
        return fallback_result(tipo, titulo)

    get_token_manager().use_token(provider)
    return result
