from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set
from uuid import UUID

from pydantic import BaseModel, Field

from iaboard.core.ws_manager import get_ws_manager
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Strong refs so fire-and-forget persistence tasks are not collected mid-flight
_pending: Set[asyncio.Task] = set()


class WorkflowEventPayload(BaseModel):
    type: str = Field(default="event")
    timestamp: str
    run_id: str
    step_id: Optional[int] = None
    status: Optional[str] = None
    level: str = Field(default="info")
    msg: str
    progress: Optional[float] = None
    data: Dict[str, Any] = Field(default_factory=dict)


async def emit_event(
    run_id: str,
    msg: str,
    *,
    step_id: Optional[int] = None,
    status: Optional[str] = None,
    level: str = "info",
    progress: Optional[float] = None,
    data: Optional[Dict[str, Any]] = None,
    persist: bool = True,
) -> None:
    payload = WorkflowEventPayload(
        timestamp=datetime.now(timezone.utc).isoformat(),
        run_id=run_id,
        step_id=step_id,
        status=status,
        level=level,
        msg=msg,
        progress=progress,
        data=data or {},
    )

    # WS (best effort)
    try:
        await get_ws_manager().broadcast(run_id, payload.model_dump())
    except Exception as exc:
        LOGGER.exception("Failed to broadcast WS event for run %s: %s", run_id, exc)

    if not persist:
        return

    event_data = dict(data or {})
    if status:
        event_data["status"] = status
    if progress is not None:
        event_data["progress"] = progress

    async def _persist() -> None:
        try:
            async with get_session() as session:
                await db_utils.record_workflow_event(
                    session,
                    UUID(run_id),
                    msg,
                    step_id=step_id,
                    level=level,
                    data=event_data,
                )
        except Exception:
            LOGGER.exception("Failed to persist event for run %s", run_id)

    task = asyncio.create_task(_persist())
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def drain_pending_events() -> None:
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
