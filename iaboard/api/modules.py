from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from iaboard.core.modules import AI_MODULES, execute_module, get_module
from iaboard.utils.schemas import ExecuteRequest

router = APIRouter(prefix="/api/modules", tags=["modules"])


class ModuleSummary(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    output: str
    estimatedTime: str


def _summary(module) -> ModuleSummary:
    return ModuleSummary(
        id=module.id,
        name=module.name,
        description=module.description,
        icon=module.icon,
        category=module.category,
        output=module.output,
        estimatedTime=module.estimated_time,
    )


@router.get("")
async def list_modules(category: Optional[str] = Query(None)) -> Dict[str, Any]:
    modules: List[ModuleSummary] = [
        _summary(m) for m in AI_MODULES if category is None or m.category == category
    ]
    return {"success": True, "modules": modules, "total": len(modules)}


@router.get("/{module_id}", response_model=ModuleSummary)
async def get_module_info(module_id: str) -> ModuleSummary:
    module = get_module(module_id)
    if module is None:
        raise HTTPException(status_code=404, detail="Module not found")
    return _summary(module)


@router.post("/{module_id}/execute")
async def run_module(module_id: str, payload: ExecuteRequest) -> Dict[str, Any]:
    try:
        return await execute_module(module_id, payload.prompt, payload.parameters)
    except KeyError:
        raise HTTPException(status_code=404, detail="Module not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
