from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AIGeneration,
    ContentInsight,
    ProgramStructure,
    Project,
    TimeSegment,
    WorkflowEvent,
    WorkflowRun,
    YouTubeAnalysis,
)


async def get_project(session: AsyncSession, project_id: str) -> Optional[Project]:
    result = await session.execute(select(Project).where(Project.id == project_id))
    return result.scalar_one_or_none()


async def record_generation(
    session: AsyncSession,
    *,
    content_type: str,
    prompt: str,
    provider: Optional[str],
    success: bool,
    url: Optional[str] = None,
    error: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> AIGeneration:
    generation = AIGeneration(
        content_type=content_type,
        prompt=prompt,
        provider=provider,
        success=success,
        url=url,
        error=error,
        data=data or {},
    )
    session.add(generation)
    await session.commit()
    await session.refresh(generation)
    return generation


# --- Workflow runs ---

async def create_workflow_run(
    session: AsyncSession, product_type: str, context: Dict[str, Any], total_steps: int
) -> WorkflowRun:
    run = WorkflowRun(
        product_type=product_type,
        status="idle",
        context=context,
        results={},
        total_steps=total_steps,
    )
    session.add(run)
    await session.commit()
    await session.refresh(run)
    return run


async def get_workflow_run(session: AsyncSession, run_id: UUID) -> Optional[WorkflowRun]:
    result = await session.execute(select(WorkflowRun).where(WorkflowRun.id == run_id))
    return result.scalar_one_or_none()


async def list_workflow_runs(
    session: AsyncSession, status: Optional[str] = None
) -> Sequence[WorkflowRun]:
    query = select(WorkflowRun)
    if status:
        query = query.where(WorkflowRun.status == status)
    result = await session.execute(query.order_by(WorkflowRun.created_at.desc()))
    return result.scalars().all()


async def update_workflow_run(session: AsyncSession, run_id: UUID, **values: Any) -> None:
    await session.execute(update(WorkflowRun).where(WorkflowRun.id == run_id).values(**values))
    await session.commit()


async def record_workflow_event(
    session: AsyncSession,
    run_id: UUID,
    message: str,
    *,
    step_id: Optional[int] = None,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> WorkflowEvent:
    event = WorkflowEvent(
        run_id=run_id,
        step_id=step_id,
        level=level,
        message=message,
        data=data or {},
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def list_workflow_events(session: AsyncSession, run_id: UUID) -> List[WorkflowEvent]:
    result = await session.execute(
        select(WorkflowEvent)
        .where(WorkflowEvent.run_id == run_id)
        .order_by(WorkflowEvent.timestamp)
    )
    return list(result.scalars().all())


# --- YouTube analyses ---

async def create_analysis(
    session: AsyncSession, *, video_id: str, url: str, title: str, analysis_type: str
) -> YouTubeAnalysis:
    analysis = YouTubeAnalysis(
        video_id=video_id,
        url=url,
        title=title,
        analysis_type=analysis_type,
        status="processing",
        meta={},
    )
    session.add(analysis)
    await session.commit()
    await session.refresh(analysis)
    return analysis


async def get_analysis(session: AsyncSession, analysis_id: int) -> Optional[YouTubeAnalysis]:
    result = await session.execute(select(YouTubeAnalysis).where(YouTubeAnalysis.id == analysis_id))
    return result.scalar_one_or_none()


async def list_analyses(session: AsyncSession, limit: int = 50) -> Sequence[YouTubeAnalysis]:
    result = await session.execute(
        select(YouTubeAnalysis).order_by(YouTubeAnalysis.created_at.desc()).limit(limit)
    )
    return result.scalars().all()


async def update_analysis(session: AsyncSession, analysis_id: int, **values: Any) -> None:
    await session.execute(
        update(YouTubeAnalysis).where(YouTubeAnalysis.id == analysis_id).values(**values)
    )
    await session.commit()


async def save_analysis_parts(
    session: AsyncSession,
    analysis_id: int,
    *,
    segments: Iterable[Dict[str, Any]],
    insights: Iterable[Dict[str, Any]],
    structure: Iterable[Dict[str, Any]],
) -> None:
    # Single commit for the whole analysis
    for seg in segments:
        session.add(TimeSegment(analysis_id=analysis_id, **seg))
    for ins in insights:
        session.add(ContentInsight(analysis_id=analysis_id, **ins))
    for phase in structure:
        session.add(ProgramStructure(analysis_id=analysis_id, **phase))
    await session.commit()


async def complete_analysis(
    session: AsyncSession, analysis_id: int, *, title: str, duration: int, metadata: Dict[str, Any]
) -> None:
    await update_analysis(
        session,
        analysis_id,
        status="completed",
        title=title,
        duration=duration,
        meta=metadata,
        completed_at=datetime.utcnow(),
    )


async def load_analysis_parts(session: AsyncSession, analysis_id: int) -> Dict[str, List[Any]]:
    segments = await session.execute(
        select(TimeSegment).where(TimeSegment.analysis_id == analysis_id).order_by(TimeSegment.start_time)
    )
    insights = await session.execute(
        select(ContentInsight).where(ContentInsight.analysis_id == analysis_id).order_by(ContentInsight.timestamp)
    )
    structure = await session.execute(
        select(ProgramStructure)
        .where(ProgramStructure.analysis_id == analysis_id)
        .order_by(ProgramStructure.start_time)
    )
    return {
        "segments": list(segments.scalars().all()),
        "insights": list(insights.scalars().all()),
        "structure": list(structure.scalars().all()),
    }
