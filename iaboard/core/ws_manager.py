from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from fastapi import WebSocket

from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

SEND_TIMEOUT = 2.0


def greeting(run_id: str) -> Dict[str, Any]:
    return {
        "type": "event",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "run_id": run_id,
        "level": "info",
        "msg": "WebSocket connected",
        "data": {},
    }


class WSManager:
    """Sockets watching workflow runs.

    The latest event of each active run is kept so a client that connects
    mid-run (page reload, second tab) sees the current step right away.
    """

    def __init__(self) -> None:
        self._watchers: Dict[str, Set[WebSocket]] = {}
        self._latest: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, run_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._watchers.setdefault(run_id, set()).add(websocket)
            latest = self._latest.get(run_id)
        await websocket.send_json(greeting(run_id))
        if latest is not None:
            await websocket.send_text(latest)

    async def disconnect(self, run_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            watchers = self._watchers.get(run_id)
            if watchers is None:
                return
            watchers.discard(websocket)
            if not watchers:
                del self._watchers[run_id]

    def forget(self, run_id: str) -> None:
        """Drops the replayed event once the run task has ended."""
        self._latest.pop(run_id, None)

    async def broadcast(self, run_id: str, payload: Mapping[str, Any]) -> None:
        message = json.dumps(payload, default=str, ensure_ascii=False)
        async with self._lock:
            self._latest[run_id] = message
            targets = list(self._watchers.get(run_id, ()))
        if not targets:
            return

        async def _deliver(websocket: WebSocket) -> Optional[WebSocket]:
            try:
                await asyncio.wait_for(websocket.send_text(message), timeout=SEND_TIMEOUT)
            except Exception as exc:
                LOGGER.debug("Dropping WS watcher of run %s: %s", run_id, exc)
                return websocket
            return None

        failed: List[WebSocket] = [
            ws for ws in await asyncio.gather(*(_deliver(ws) for ws in targets)) if ws is not None
        ]
        if failed:
            async with self._lock:
                watchers = self._watchers.get(run_id, set())
                watchers.difference_update(failed)


_ws_manager: Optional[WSManager] = None


def get_ws_manager() -> WSManager:
    global _ws_manager
    if _ws_manager is None:
        _ws_manager = WSManager()
    return _ws_manager


def reset_ws_manager() -> None:
    global _ws_manager
    _ws_manager = None
