from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional
from uuid import UUID

from iaboard.core.checkpointer import close_checkpointer, get_checkpointer
from iaboard.core.event_bus import drain_pending_events, emit_event
from iaboard.core.graph import create_workflow_graph, progress_for
from iaboard.core.state import WorkflowState
from iaboard.core.workflow_steps import WORKFLOW_STEPS
from iaboard.core.ws_manager import get_ws_manager
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session
from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Orchestrator:
    """Owns the background tasks that drive workflow runs through the graph."""

    def __init__(self) -> None:
        self._compiled_graph = None
        self._init_lock = asyncio.Lock()
        self._stop_events: dict[str, asyncio.Event] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._shutting_down = False

    async def _get_graph(self):
        async with self._init_lock:
            if self._compiled_graph is None:
                try:
                    checkpointer = await asyncio.wait_for(get_checkpointer(), timeout=10.0)
                except asyncio.TimeoutError:
                    LOGGER.error("Graph initialization timed out after 10s")
                    raise RuntimeError("Graph initialization timeout")
                self._compiled_graph = create_workflow_graph(checkpointer)
        return self._compiled_graph

    def stop_requested(self, run_id: str) -> bool:
        ev = self._stop_events.get(run_id)
        return ev is not None and ev.is_set()

    def is_running(self, run_id: str) -> bool:
        task = self._tasks.get(run_id)
        return task is not None and not task.done()

    async def request_stop(self, run_id: str) -> bool:
        if not self.is_running(run_id):
            return False
        self._stop_events[run_id].set()
        self._tasks[run_id].cancel()
        return True

    async def start(self, product_type: str, context: Optional[Dict[str, Any]] = None) -> str:
        async with get_session() as session:
            run = await db_utils.create_workflow_run(
                session, product_type, context or {}, total_steps=len(WORKFLOW_STEPS)
            )
        run_id = str(run.id)
        LOGGER.info("Starting workflow run %s (%s)", run_id, product_type)

        initial_state: WorkflowState = {
            "run_id": run_id,
            "product_type": product_type,
            "context": context or {},
            "research": None,
            "current_step": 1,
            "total_steps": len(WORKFLOW_STEPS),
            "results": {},
            "sources": {},
            "status": "processing",
            "download_file": None,
        }
        self._spawn(run_id, initial_state)
        return run_id

    def _spawn(self, run_id: str, state: Optional[WorkflowState]) -> None:
        self._stop_events[run_id] = asyncio.Event()
        task = asyncio.create_task(self._run_workflow(run_id, state))
        self._tasks[run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run_id, None))

    async def _set_status(self, run_id: str, status: str) -> None:
        async with get_session() as session:
            await db_utils.update_workflow_run(session, UUID(run_id), status=status)

    async def _run_workflow(self, run_id: str, state: Optional[WorkflowState]) -> None:
        try:
            try:
                graph = await self._get_graph()
            except Exception as graph_error:
                LOGGER.exception("Failed to get graph for run %s: %s", run_id, graph_error)
                await emit_event(run_id, f"Falha ao iniciar workflow: {str(graph_error)[:200]}", status="error", level="error")
                await self._set_status(run_id, "error")
                return

            await self._set_status(run_id, "processing")
            await emit_event(run_id, "Iniciando workflow...", status="processing", progress=0.0)

            config = {"configurable": {"thread_id": run_id}, "recursion_limit": 50}
            timeout = get_settings().workflow_timeout
            try:
                result = await asyncio.wait_for(graph.ainvoke(state, config=config), timeout=timeout)
            except asyncio.TimeoutError:
                error_msg = f"Workflow timed out after {timeout:.0f}s"
                LOGGER.error("%s for run %s", error_msg, run_id)
                await emit_event(run_id, error_msg, status="error", level="error")
                await self._set_status(run_id, "error")
                return

            final_status = (result or {}).get("status", "completed")
            if final_status != "completed":
                await self._set_status(run_id, final_status)
            LOGGER.info("Workflow run %s finished with status %s", run_id, final_status)
        except asyncio.CancelledError:
            LOGGER.info("Workflow cancelled for run %s", run_id)
            if self._shutting_down:
                # Left as processing so the next startup resumes it
                raise
            await self._set_status(run_id, "stopped")
            await emit_event(run_id, "Workflow interrompido", status="stopped", level="warning")
            raise
        except Exception as exc:
            LOGGER.exception("Workflow failed for run %s: %s", run_id, exc)
            await emit_event(run_id, f"Erro no workflow: {str(exc)[:200]}", status="error", level="error")
            await self._set_status(run_id, "error")
        finally:
            self._stop_events.pop(run_id, None)
            get_ws_manager().forget(run_id)

    async def resume_run(self, run_id: UUID) -> None:
        """Continues an interrupted run from its last checkpoint, or marks it failed."""
        run_str = str(run_id)
        LOGGER.info("Resuming workflow run %s", run_str)
        try:
            graph = await self._get_graph()
            snapshot = await graph.aget_state({"configurable": {"thread_id": run_str}})
            if not snapshot.values:
                LOGGER.warning("No checkpoint found for %s. Marking as error.", run_str)
                await self._set_status(run_str, "error")
                return
            self._spawn(run_str, None)
        except Exception as exc:
            LOGGER.error("Failed to resume run %s: %s", run_str, exc)
            await self._set_status(run_str, "error")

    async def run_status(self, run_id: UUID) -> Optional[Dict[str, Any]]:
        async with get_session() as session:
            run = await db_utils.get_workflow_run(session, run_id)
        if run is None:
            return None
        completed = len(run.results or {})
        return {
            "runId": str(run.id),
            "productType": run.product_type,
            "status": run.status,
            "currentStep": run.current_step,
            "totalSteps": run.total_steps,
            "progress": progress_for(completed, run.total_steps),
            "results": run.results or {},
            "downloadFile": run.download_file,
            "downloadUrl": f"/downloads/{run.download_file}" if run.download_file else None,
        }

    async def shutdown(self) -> None:
        self._shutting_down = True
        for task in list(self._tasks.values()):
            task.cancel()
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await drain_pending_events()
        await close_checkpointer()
        self._compiled_graph = None
        self._init_lock = asyncio.Lock()
        self._stop_events.clear()
        self._shutting_down = False


orchestrator = Orchestrator()
