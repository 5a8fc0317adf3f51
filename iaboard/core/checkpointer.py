from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import aiosqlite
from langgraph.checkpoint.sqlite.aio import AsyncSqliteSaver

from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Older aiosqlite releases lack the liveness probe AsyncSqliteSaver calls
if not hasattr(aiosqlite.Connection, "is_alive"):
    def is_alive(self):
        return getattr(self, "_connection", None) is not None

    aiosqlite.Connection.is_alive = is_alive

_saver: Optional[AsyncSqliteSaver] = None
_conn: Optional[aiosqlite.Connection] = None
_path: Optional[Path] = None


async def get_checkpointer() -> AsyncSqliteSaver:
    global _saver, _conn, _path

    db_path = get_settings().data_root / "workflow_checkpoints.db"
    if _saver is not None and _conn is not None and _path == db_path:
        if _conn.is_alive():
            return _saver
        LOGGER.warning("Checkpointer connection is not alive; reinitializing")
        await close_checkpointer()
    elif _saver is not None:
        await close_checkpointer()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.info("Initializing LangGraph checkpointer at %s", db_path)
    try:
        _conn = await asyncio.wait_for(aiosqlite.connect(str(db_path)), timeout=5.0)
        _saver = AsyncSqliteSaver(_conn)
        await asyncio.wait_for(_saver.setup(), timeout=5.0)
    except asyncio.TimeoutError:
        LOGGER.error("Checkpointer initialization timed out after 5s")
        raise RuntimeError("Checkpointer initialization timeout")
    _path = db_path
    return _saver


async def close_checkpointer() -> None:
    global _saver, _conn, _path
    if _conn is not None:
        try:
            await _conn.close()
        except Exception as exc:
            LOGGER.debug("Error closing checkpointer connection: %s", exc)
        LOGGER.info("LangGraph checkpointer closed")
    _conn = None
    _saver = None
    _path = None
