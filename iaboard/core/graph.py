from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Literal
from uuid import UUID

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, StateGraph

from iaboard.core.event_bus import emit_event
from iaboard.core.researcher import MarketResearcher, build_market_query
from iaboard.core.state import WorkflowState
from iaboard.core.workflow_steps import WORKFLOW_STEPS, get_step, process_step
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session
from iaboard.settings import get_settings
from iaboard.utils import fileutils
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


def progress_for(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(completed / total * 100, 1)


def _stop_requested(run_id: str) -> bool:
    from iaboard.core.orchestrator import orchestrator

    return orchestrator.stop_requested(run_id)


async def research_node(state: WorkflowState) -> Dict[str, Any]:
    """Web search feeding the market-analysis step."""
    run_id = state["run_id"]
    query = build_market_query(state["product_type"])
    await emit_event(run_id, f"Pesquisa de mercado: {query}", step_id=1, persist=False)

    try:
        payload = await asyncio.wait_for(MarketResearcher().search(query), timeout=15.0)
    except asyncio.TimeoutError:
        LOGGER.warning("Research timed out after 15s, continuing without results")
        payload = {"query": query, "results": [], "cached": False, "error": "timeout"}

    return {"research": payload}


async def step_node(state: WorkflowState) -> Dict[str, Any]:
    run_id = state["run_id"]
    step_id = state["current_step"]
    total = state["total_steps"]
    step = get_step(step_id)
    title = step.title if step else f"Etapa {step_id}"

    if _stop_requested(run_id):
        await emit_event(run_id, "Workflow interrompido", step_id=step_id, status="stopped", level="warning")
        return {"status": "stopped"}

    await emit_event(
        run_id,
        f"Processando: {title}",
        step_id=step_id,
        status="processing",
        progress=progress_for(step_id - 1, total),
    )
    async with get_session() as session:
        await db_utils.update_workflow_run(session, UUID(run_id), current_step=step_id, status="processing")

    context: Dict[str, Any] = dict(state.get("results") or {})
    research = state.get("research")
    if step_id == 1 and research and research.get("results"):
        context["webResearch"] = research["results"]

    try:
        outcome = await process_step(step_id, state["product_type"], context)
    except Exception as exc:
        LOGGER.exception("Step %s failed for run %s", step_id, run_id)
        await emit_event(
            run_id, f"Erro em {title}: {str(exc)[:200]}", step_id=step_id, status="error", level="error"
        )
        return {"status": "error"}

    key = f"step_{step_id}"
    results = {**(state.get("results") or {}), key: outcome["data"]}
    sources = {**(state.get("sources") or {}), key: outcome["source"]}

    async with get_session() as session:
        await db_utils.update_workflow_run(session, UUID(run_id), results=results)

    await emit_event(
        run_id,
        f"Concluído: {title}",
        step_id=step_id,
        status="completed",
        progress=progress_for(step_id, total),
        data={"result": outcome["data"], "source": outcome["source"]},
    )

    delay = get_settings().workflow_step_delay
    if delay:
        await asyncio.sleep(delay)

    return {"results": results, "sources": sources, "current_step": step_id + 1}


def render_summary(state: WorkflowState) -> str:
    lines = [
        f"# Produto Finalizado: {state['product_type']}",
        "",
        f"Gerado em {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}",
        "",
    ]
    results = state.get("results") or {}
    sources = state.get("sources") or {}
    for step in WORKFLOW_STEPS:
        key = f"step_{step.id}"
        if key not in results:
            continue
        lines.append(f"## {step.id}. {step.title}")
        lines.append(f"_{step.description}_ ({sources.get(key, 'fallback')})")
        lines.append("")
        data = results[key]
        if isinstance(data, dict):
            for field, value in data.items():
                if isinstance(value, (list, dict)):
                    value = json.dumps(value, ensure_ascii=False)
                lines.append(f"- **{field}**: {value}")
        else:
            lines.append(str(data))
        lines.append("")
    return "\n".join(lines)


async def finalize_node(state: WorkflowState) -> Dict[str, Any]:
    """Compiles the markdown deliverable and marks the run completed."""
    run_id = state["run_id"]
    filename = f"produto_{run_id}.md"
    fileutils.write_download(filename, render_summary(state))

    async with get_session() as session:
        await db_utils.update_workflow_run(
            session, UUID(run_id), status="completed", download_file=filename
        )
    await emit_event(
        run_id,
        "Workflow concluído!",
        status="completed",
        progress=100.0,
        data={"file": {"name": filename, "url": f"/downloads/{filename}"}},
    )
    return {"status": "completed", "download_file": filename}


# --- Graph Construction ---

def create_workflow_graph(checkpointer: BaseCheckpointSaver):
    workflow = StateGraph(WorkflowState)

    workflow.add_node("research_node", research_node)
    workflow.add_node("step_node", step_node)
    workflow.add_node("finalize_node", finalize_node)

    def should_research(state: WorkflowState) -> Literal["research_node", "step_node"]:
        if get_settings().enable_web_search and state.get("current_step", 1) == 1:
            return "research_node"
        return "step_node"

    workflow.set_conditional_entry_point(should_research)
    workflow.add_edge("research_node", "step_node")

    def next_after_step(state: WorkflowState) -> Literal["step_node", "finalize_node", "__end__"]:
        if state.get("status") in ("stopped", "error"):
            return END
        if state["current_step"] > state["total_steps"]:
            return "finalize_node"
        return "step_node"

    workflow.add_conditional_edges("step_node", next_after_step)
    workflow.add_edge("finalize_node", END)

    return workflow.compile(checkpointer=checkpointer)
