from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter

from iaboard.core.token_manager import get_token_manager

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "IA Board API is running",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/api/tokens/status")
async def tokens_status() -> Dict[str, Any]:
    return {
        "success": True,
        "services": get_token_manager().all_status(),
        "timestamp": datetime.utcnow().isoformat(),
    }
