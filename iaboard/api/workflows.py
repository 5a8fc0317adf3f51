from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from iaboard.core.orchestrator import orchestrator
from iaboard.core.workflow_steps import WORKFLOW_STEPS
from iaboard.core.ws_manager import get_ws_manager
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session_dependency
from iaboard.utils.logging import get_logger
from iaboard.utils.schemas import WorkflowStartRequest

router = APIRouter(tags=["workflows"])
LOGGER = get_logger(__name__)


@router.get("/api/workflows/steps")
async def list_steps() -> Dict[str, Any]:
    return {
        "success": True,
        "steps": [step.model_dump(exclude={"prompt", "fallback"}) for step in WORKFLOW_STEPS],
    }


@router.get("/api/workflows")
async def list_runs(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session_dependency),
) -> Dict[str, Any]:
    runs = await db_utils.list_workflow_runs(session, status=status_filter)
    return {
        "success": True,
        "runs": [
            {
                "runId": str(r.id),
                "productType": r.product_type,
                "status": r.status,
                "currentStep": r.current_step,
                "totalSteps": r.total_steps,
                "createdAt": r.created_at.isoformat() if r.created_at else None,
            }
            for r in runs
        ],
    }


@router.post("/api/workflows", status_code=status.HTTP_201_CREATED)
async def start_workflow(payload: WorkflowStartRequest) -> Dict[str, Any]:
    run_id = await orchestrator.start(payload.productType, payload.context)
    return {"success": True, "runId": run_id, "status": "processing"}


@router.get("/api/workflows/{run_id}")
async def workflow_status(run_id: UUID) -> Dict[str, Any]:
    snapshot = await orchestrator.run_status(run_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Workflow run not found")
    return {"success": True, **snapshot}


@router.post("/api/workflows/{run_id}/stop")
async def stop_workflow(
    run_id: UUID, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    run = await db_utils.get_workflow_run(session, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Workflow run not found")
    stopped = await orchestrator.request_stop(str(run_id))
    return {"success": True, "stopped": stopped, "status": "stopped" if stopped else run.status}


@router.get("/api/workflows/{run_id}/events")
async def workflow_events(
    run_id: UUID, session: AsyncSession = Depends(get_session_dependency)
) -> List[Dict[str, Any]]:
    events = await db_utils.list_workflow_events(session, run_id)
    return [
        {
            "stepId": e.step_id,
            "level": e.level,
            "msg": e.message,
            "data": e.data,
            "timestamp": e.timestamp.isoformat() if e.timestamp else None,
        }
        for e in events
    ]


@router.websocket("/ws/workflows/{run_id}")
async def workflow_socket(websocket: WebSocket, run_id: str) -> None:
    await get_ws_manager().connect(run_id, websocket)
    try:
        while True:
            payload = await websocket.receive_text()
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                continue
            if data.get("type") == "command" and data.get("command") == "stop":
                await orchestrator.request_stop(run_id)
                await websocket.send_json({"type": "info", "msg": "stop requested", "run_id": run_id})
    except WebSocketDisconnect:
        await get_ws_manager().disconnect(run_id, websocket)
