from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from iaboard.memory import utils as db_utils
from iaboard.memory.db import get_session_dependency
from iaboard.memory.models import Project
from iaboard.utils.logging import get_logger
from iaboard.utils.schemas import ProjectCreate

router = APIRouter(prefix="/api/projects", tags=["projects"])
LOGGER = get_logger(__name__)


def _project_dict(p: Project) -> Dict[str, Any]:
    return {
        "id": p.id,
        "title": p.title,
        "description": p.description,
        "productType": p.product_type,
        "status": p.status,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
    }


@router.get("")
async def list_projects(
    session: AsyncSession = Depends(get_session_dependency),
    limit: int = Query(default=50, le=100),
    offset: int = Query(default=0, ge=0),
) -> Dict[str, Any]:
    total = (await session.execute(select(func.count()).select_from(Project))).scalar() or 0
    result = await session.execute(
        select(Project).order_by(Project.created_at.desc()).limit(limit).offset(offset)
    )
    return {
        "projects": [_project_dict(p) for p in result.scalars().all()],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    project = Project(
        title=payload.title,
        description=payload.description,
        product_type=payload.productType,
    )
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return {"success": True, "project": _project_dict(project)}


@router.get("/{project_id}")
async def get_project(
    project_id: str, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    project = await db_utils.get_project(session, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return _project_dict(project)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    project = await db_utils.get_project(session, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    await session.delete(project)
    await session.commit()
    LOGGER.info("Deleted project %s", project_id)
    return {"success": True, "message": f"Project {project.title} deleted"}
