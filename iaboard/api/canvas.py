from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from iaboard.memory.db import get_session_dependency
from iaboard.memory.models import CanvasNode
from iaboard.utils.schemas import CanvasNodeCreate, CanvasNodeUpdate

router = APIRouter(prefix="/api/canvas/nodes", tags=["canvas"])


def _node_dict(node: CanvasNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "moduleId": node.module_id,
        "title": node.title,
        "status": node.status,
        "position": {"x": node.x, "y": node.y},
        "data": node.data or {},
        "updatedAt": node.updated_at.isoformat() if node.updated_at else None,
    }


async def _get_node(session: AsyncSession, node_id: str) -> CanvasNode:
    node = await session.get(CanvasNode, node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


@router.get("")
async def list_nodes(session: AsyncSession = Depends(get_session_dependency)) -> Dict[str, Any]:
    result = await session.execute(select(CanvasNode).order_by(CanvasNode.created_at))
    return {"success": True, "nodes": [_node_dict(n) for n in result.scalars().all()]}


@router.post("", status_code=201)
async def create_node(
    payload: CanvasNodeCreate, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    node = CanvasNode(
        module_id=payload.moduleId,
        title=payload.title,
        status=payload.status,
        x=payload.x,
        y=payload.y,
        data=payload.data,
    )
    session.add(node)
    await session.commit()
    await session.refresh(node)
    return {"success": True, "node": _node_dict(node)}


@router.put("/{node_id}")
async def update_node(
    node_id: str, payload: CanvasNodeUpdate, session: AsyncSession = Depends(get_session_dependency)
) -> Dict[str, Any]:
    node = await _get_node(session, node_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(node, field, value)
    session.add(node)
    await session.commit()
    await session.refresh(node)
    return {"success": True, "node": _node_dict(node)}


@router.delete("/{node_id}")
async def delete_node(node_id: str, session: AsyncSession = Depends(get_session_dependency)) -> Dict[str, Any]:
    node = await _get_node(session, node_id)
    await session.delete(node)
    await session.commit()
    return {"success": True}
