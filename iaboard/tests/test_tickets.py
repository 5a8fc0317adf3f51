import asyncio
import json

from iaboard.core import tickets
from iaboard.core.tickets import (
    FALLBACK_NEXT_STEPS,
    FALLBACK_ROI,
    TICKET_KINDS,
    TICKET_TYPES,
    build_prompt,
    process_ticket,
    processing_stages,
)
from iaboard.core.token_manager import get_token_manager


class FixedAdapter:
    def __init__(self, text, provider="openai"):
        self.text = text
        self.provider = provider
        self.prompts = []

    async def acomplete_with_provider(self, prompt, **kwargs):
        self.prompts.append(prompt)
        return self.text, self.provider


class BrokenAdapter:
    async def acomplete_with_provider(self, prompt, **kwargs):
        raise RuntimeError("all providers failed")


def test_every_type_has_stages_and_guidance():
    for tipo in TICKET_TYPES:
        kind = TICKET_KINDS[tipo]
        assert len(kind.next_steps) == 4
        assert kind.roi
        assert processing_stages(tipo) == kind.stages


def test_build_prompt_carries_title_and_description():
    prompt = build_prompt(TICKET_KINDS["funil"], "Curso de Yoga", "Funil para iniciantes")
    assert "PROJETO: Curso de Yoga" in prompt
    assert "DESCRIÇÃO: Funil para iniciantes" in prompt
    assert prompt.startswith("Você é ")


def test_copy_ticket_splits_structured_answer():
    async def inner():
        answer = json.dumps(
            {"headlines": ["Headline A", "Headline B"], "copy_principal": "Texto principal"}
        )
        adapter = FixedAdapter(answer)
        result = await process_ticket("copy", "Ebook", "copy para ebook", adapter=adapter)

        assert result.success is True
        assert result.estrutura["headlines"] == ["Headline A", "Headline B"]
        files = {f.nome: f.conteudo for f in result.arquivos}
        assert files["copy_completo.txt"] == "Texto principal"
        assert files["headlines.txt"] == "Headline A\n\nHeadline B"
        assert result.metadata == {"tipo": "copy", "provider": "openai", "fallback": False}
        assert "Ebook" in adapter.prompts[0]

    asyncio.run(inner())


def test_copy_ticket_without_json_keeps_raw_text():
    async def inner():
        result = await process_ticket("copy", "Ebook", "", adapter=FixedAdapter("Só texto corrido"))
        files = {f.nome: f.conteudo for f in result.arquivos}
        assert files["copy_completo.txt"] == "Só texto corrido"
        assert files["headlines.txt"] == "Headlines não disponíveis"
        assert result.estrutura == {}

    asyncio.run(inner())


def test_copy_ticket_with_nested_copy_is_serialized():
    async def inner():
        answer = json.dumps(
            {"headlines": ["A", "B"], "copy_principal": {"hook": "Pare agora", "body": "Oferta"}},
            ensure_ascii=False,
        )
        result = await process_ticket("copy", "Ebook", "", adapter=FixedAdapter(answer))

        assert result.metadata["fallback"] is False
        files = {f.nome: f.conteudo for f in result.arquivos}
        assert json.loads(files["copy_completo.txt"]) == {"hook": "Pare agora", "body": "Oferta"}
        assert files["headlines.txt"] == "A\n\nB"

    asyncio.run(inner())


def test_copy_ticket_ignores_headlines_that_are_not_a_list():
    async def inner():
        answer = json.dumps({"headlines": "Uma só", "copy_principal": "Texto"})
        result = await process_ticket("copy", "Ebook", "", adapter=FixedAdapter(answer))
        files = {f.nome: f.conteudo for f in result.arquivos}
        assert files["headlines.txt"] == "Headlines não disponíveis"
        assert files["copy_completo.txt"] == "Texto"

    asyncio.run(inner())


def test_copy_ticket_assembly_error_falls_back(monkeypatch):
    def explode(kind, response):
        raise TypeError("unexpected structure")

    monkeypatch.setattr(tickets, "_copy_files", explode)

    async def inner():
        before = get_token_manager().status("openai")["tokensLeft"]
        result = await process_ticket("copy", "Ebook", "", adapter=FixedAdapter("{}"))
        assert result.metadata == {"tipo": "copy", "fallback": True}
        assert get_token_manager().status("openai")["tokensLeft"] == before

    asyncio.run(inner())


def test_non_copy_ticket_adds_companion_file():
    async def inner():
        result = await process_ticket("design", "Marca", "identidade", adapter=FixedAdapter("Conceito"))
        assert [f.nome for f in result.arquivos] == ["conceito_design.txt", "paleta_cores.txt"]
        assert result.arquivos[0].conteudo == "Conceito"
        assert result.estrutura is None
        assert result.proximosPassos == TICKET_KINDS["design"].next_steps

    asyncio.run(inner())


def test_successful_ticket_spends_provider_token():
    async def inner():
        before = get_token_manager().status("anthropic")["tokensLeft"]
        await process_ticket("analise", "Loja", "", adapter=FixedAdapter("ok", provider="anthropic"))
        assert get_token_manager().status("anthropic")["tokensLeft"] == before - 1

    asyncio.run(inner())


def test_failing_provider_returns_fallback():
    async def inner():
        result = await process_ticket("funil", "Mentoria", "", adapter=BrokenAdapter())
        assert result.metadata == {"tipo": "funil", "fallback": True}
        assert result.conteudo.startswith("FUNIL COMPLETO PARA: Mentoria")
        assert result.arquivos[0].nome == "estrutura_funil.txt"
        assert result.proximosPassos == FALLBACK_NEXT_STEPS
        assert result.estimativaROI == FALLBACK_ROI

    asyncio.run(inner())


def test_empty_answer_and_unknown_type_use_fallback():
    async def inner():
        empty = await process_ticket("video", "Canal", "", adapter=FixedAdapter("   "))
        assert empty.metadata["fallback"] is True
        assert empty.conteudo.startswith("ROTEIRO VSL PARA: Canal")

        unknown = await process_ticket("podcast", "Show", "", adapter=FixedAdapter("nunca chamado"))
        assert unknown.metadata == {"tipo": "podcast", "fallback": True}
        assert unknown.conteudo.startswith("COPY INTELIGENTE PARA: Show")

    asyncio.run(inner())
