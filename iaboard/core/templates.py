"""Keyword-driven template text used when no LLM answers.

The prompt is classified by simple keyword matching and one of the canned
marketing pieces below is filled with the prompt's subject. The same module
also derives the cosmetic parameters (colour, frame size, tone) used by the
local media renderer.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

STOPWORDS = frozenset(
    {"para", "como", "qual", "onde", "quando", "porque", "sobre", "criar", "fazer", "gerar"}
)
DEFAULT_SUBJECT = "seu projeto"


@dataclass
class TemplateText:
    content: str
    prompt_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def extract_subject(prompt: str) -> str:
    words = (prompt or "").lower().split(" ")
    key_terms = [w for w in words if len(w) > 4 and w not in STOPWORDS]
    return " ".join(key_terms[:3]) or DEFAULT_SUBJECT


def analyze_prompt_type(prompt: str) -> str:
    p = (prompt or "").lower()
    if "marketing" in p or "copy" in p:
        return "marketing"
    if "strategy" in p or "business" in p:
        return "strategy"
    if "product" in p:
        return "product"
    if "content" in p:
        return "content"
    if "email" in p:
        return "email"
    if "funnel" in p or "sales" in p:
        return "sales"
    return "general"


def select_color(prompt: str) -> str:
    keywords = (prompt or "").lower()
    if any(k in keywords for k in ("tech", "digital", "tecnologia")):
        return "#7c3aed"
    if any(k in keywords for k in ("marketing", "business", "negócio")):
        return "#2563eb"
    if any(k in keywords for k in ("creative", "design", "criativ")):
        return "#ec4899"
    if any(k in keywords for k in ("nature", "green", "natureza")):
        return "#16a34a"
    return "#374151"


def dimensions(aspect_ratio: str | None) -> Tuple[int, int]:
    if aspect_ratio == "9:16":
        return 720, 1280
    if aspect_ratio == "1:1":
        return 720, 720
    return 1280, 720


def tone_frequency(prompt: str) -> int:
    words = (prompt or "").lower()
    if "happy" in words or "alegre" in words:
        return 523  # C5
    if "calm" in words or "calmo" in words:
        return 440  # A4
    if "energetic" in words or "energia" in words:
        return 659  # E5
    return 440


def _marketing_copy(subject: str) -> str:
    variants = [
        f"""🎯 **Descobrindo a Solução Perfeita para {subject}**

Você já se perguntou como seria ter uma ferramenta que realmente entende suas necessidades? Nossa solução foi criada para profissionais que buscam resultados excepcionais.

✨ **Por que escolher nossa abordagem:**
• Resultados comprovados em mais de 1000 projetos
• Interface intuitiva que economiza até 5 horas por semana
• Suporte 24/7 com especialistas dedicados
• Garantia de satisfação de 30 dias

**Transforme sua estratégia hoje mesmo!**

🚀 **Oferta Limitada:** Primeiros 100 usuários recebem acesso premium gratuito por 3 meses.""",
        f"""💡 **Revolução na Forma como Você Trabalha com {subject}**

Imagine uma ferramenta que não apenas simplifica seu trabalho, mas o torna mais eficiente e lucrativo.

🔥 **Benefícios Exclusivos:**
→ Aumento de 300% na produtividade
→ Redução de 80% no tempo gasto em tarefas repetitivas
→ ROI garantido em menos de 30 dias
→ Integração perfeita com suas ferramentas atuais

⚡ **Ação Imediata Necessária:** Apenas 48 vagas disponíveis para o beta gratuito.""",
    ]
    return random.choice(variants)


def _business_strategy(subject: str) -> str:
    return f"""📊 **Análise Estratégica Completa para {subject}**

**1. Situação Atual e Oportunidades**
• **Lacuna no Mercado:** demanda não atendida por soluções mais eficientes
• **Tendências Emergentes:** transformação digital acelerada no setor
• **Posicionamento Ideal:** oportunidade de liderar um nicho específico

**2. Estratégia de Implementação**
→ **Fase 1 (30 dias):** validação e ajustes no produto/serviço
→ **Fase 2 (60 dias):** lançamento piloto com grupo seleto de clientes
→ **Fase 3 (90 dias):** escalabilidade e expansão de mercado

**3. Métricas de Sucesso**
• Taxa de conversão: meta de 15% no primeiro trimestre
• Satisfação do cliente: NPS acima de 70
• ROI: retorno positivo em 90 dias"""


def _product_analysis(subject: str) -> str:
    return f"""🚀 **Análise Completa de Produto: {subject}**

**Público-Alvo Identificado:**
• Empresários digitais (35% do mercado)
• Freelancers e consultores (28% do mercado)
• Pequenas e médias empresas (25% do mercado)
• Startups em crescimento (12% do mercado)

**Estratégia de Precificação:**
• **Plano Básico:** R$ 97/mês
• **Plano Profissional:** R$ 197/mês
• **Plano Enterprise:** R$ 397/mês

**Recomendações para Lançamento:**
1. Beta teste com 20 usuários selecionados
2. Campanha de pré-lançamento com desconto especial
3. Parcerias com influenciadores do nicho
4. Webinars demonstrativos semanais"""


def _content_ideas(subject: str) -> str:
    return f"""📱 **Estratégia de Conteúdo: {subject}**

**Semana 1 - Educação e Valor:** erros comuns, carrossel de dicas, tutorial de 60 segundos
**Semana 2 - Engajamento e Comunidade:** enquete, live de perguntas, conteúdo de usuários
**Semana 3 - Autoridade e Expertise:** tendências do mercado, comparativos, infográficos
**Semana 4 - Conversão e CTA:** depoimentos, demonstrações, oferta especial limitada

**Métricas para Acompanhar:**
• Alcance orgânico
• Taxa de engajamento
• Cliques no link da bio
• Conversões para leads"""


def _email_sequence(subject: str) -> str:
    return f"""📧 **Sequência de E-mail Marketing: {subject}**

**Email 1 - Boas-vindas (envio imediato)**
Assunto: "Bem-vindo! Sua jornada de transformação começa agora 🚀"

**Email 2 - Valor + Educação (24h depois)**
Assunto: "O erro de R$ 10.000 que você pode estar cometendo"

**Email 3 - Case de Sucesso (48h depois)**
**Email 4 - Objeções (72h depois)**
**Email 5 - Urgência + Oferta (96h depois)**

**Métricas Esperadas:**
• Taxa de abertura: 35-45%
• Taxa de clique: 8-12%
• Taxa de conversão: 3-5%"""


def _sales_funnel(subject: str) -> str:
    return f"""🎯 **Funil de Vendas Completo: {subject}**

**ETAPA 1: ATRAÇÃO (Topo do Funil)**
🎁 Isca digital: e-book gratuito
📍 Tráfego: Facebook Ads (60%), Google Ads (25%), orgânico (15%)

**ETAPA 2: RELACIONAMENTO (Meio do Funil)**
📧 Sequência de 7 e-mails em 10 dias
🎥 Webinar gratuito

**ETAPA 3: CONVERSÃO (Fundo do Funil)**
💎 Oferta principal com escassez: apenas 50 vagas por turma

**ETAPA 4: RETENÇÃO**
🔄 Upsell para mentoria VIP e comunidade exclusiva

**Projeções de Conversão:**
• Landing Page → Lead: 25%
• Lead → Webinar: 15%
• Webinar → Venda: 8%"""


def _general_response(subject: str) -> str:
    return f"""💡 **Análise Detalhada: {subject}**

**Insights Principais:**

1. **Oportunidade Identificada:** o cenário atual apresenta uma janela única para soluções inovadoras.
2. **Estratégia Recomendada:** diferenciação por valor agregado e validação constante.
3. **Implementação Prática:**
   → Planejamento e estruturação (2-4 semanas)
   → Teste piloto com grupo restrito (4-6 semanas)
   → Expansão gradual baseada em feedback (8-12 semanas)

**Próximos Passos:**
1. Definir objetivos específicos e mensuráveis
2. Estabelecer cronograma detalhado
3. Identificar recursos necessários
4. Criar sistema de monitoramento e ajustes"""


# Order matters: the first matching keyword group wins
_ROUTES: List[Tuple[Tuple[str, ...], Callable[[str], str]]] = [
    (("marketing", "copy"), _marketing_copy),
    (("strategy", "business"), _business_strategy),
    (("product", "launch"), _product_analysis),
    (("content", "social"), _content_ideas),
    (("email", "sequence"), _email_sequence),
    (("funnel", "sales"), _sales_funnel),
]


def generate_text(prompt: str) -> TemplateText:
    lowered = (prompt or "").lower()
    subject = extract_subject(prompt)
    builder = _general_response
    for keywords, candidate in _ROUTES:
        if any(k in lowered for k in keywords):
            builder = candidate
            break

    content = builder(subject)
    prompt_type = analyze_prompt_type(prompt)
    return TemplateText(
        content=content,
        prompt_type=prompt_type,
        metadata={
            "promptType": prompt_type,
            "wordCount": len(content.split(" ")),
            "generated": True,
        },
    )
