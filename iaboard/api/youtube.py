from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from iaboard.core import youtube_analyzer
from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session_dependency
from iaboard.memory.models import YouTubeAnalysis
from iaboard.utils.logging import get_logger
from iaboard.utils.schemas import YouTubeAnalyzeRequest

router = APIRouter(prefix="/api/youtube", tags=["youtube"])
LOGGER = get_logger(__name__)


def _analysis_dict(a: YouTubeAnalysis) -> Dict[str, Any]:
    return {
        "id": a.id,
        "videoId": a.video_id,
        "url": a.url,
        "title": a.title,
        "duration": a.duration,
        "analysisType": a.analysis_type,
        "status": a.status,
        "metadata": a.meta or {},
        "createdAt": a.created_at.isoformat() if a.created_at else None,
        "completedAt": a.completed_at.isoformat() if a.completed_at else None,
    }


@router.post("/analyze")
async def analyze(
    payload: YouTubeAnalyzeRequest, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    analysis = await db_utils.create_analysis(
        session,
        video_id=youtube_analyzer.extract_video_id(payload.url),
        url=payload.url,
        title="Processing...",
        analysis_type="live" if "live" in payload.url else "video",
    )
    youtube_analyzer.start_analysis(analysis.id, payload.url)
    LOGGER.info("YouTube analysis %s started for %s", analysis.id, payload.url)
    return {
        "success": True,
        "analysisId": analysis.id,
        "status": "processing",
        "message": "Analysis started successfully",
    }


@router.get("/analysis/{analysis_id}")
async def get_analysis(
    analysis_id: int, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    analysis = await db_utils.get_analysis(session, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    parts = await db_utils.load_analysis_parts(session, analysis_id)
    return {
        **_analysis_dict(analysis),
        "segments": [s.model_dump(exclude={"analysis_id"}) for s in parts["segments"]],
        "insights": [i.model_dump(exclude={"analysis_id"}) for i in parts["insights"]],
        "structure": [p.model_dump(exclude={"analysis_id"}) for p in parts["structure"]],
    }


@router.get("/analyses")
async def list_analyses(
    limit: int = Query(default=50, le=200),
    session: AsyncSession = Depends(get_session_dependency),
) -> List[Dict[str, Any]]:
    return [_analysis_dict(a) for a in await db_utils.list_analyses(session, limit)]
