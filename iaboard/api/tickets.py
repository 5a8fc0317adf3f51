from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from iaboard.core.tickets import TICKET_TYPES, TicketResult, process_ticket, processing_stages
from iaboard.utils.schemas import TicketRequest

router = APIRouter(prefix="/api/maquina-milionaria", tags=["tickets"])


@router.get("/types")
async def list_ticket_types() -> Dict[str, Any]:
    return {
        "success": True,
        "types": [{"tipo": tipo, "stages": processing_stages(tipo)} for tipo in TICKET_TYPES],
    }


@router.get("/stages/{tipo}")
async def ticket_stages(tipo: str) -> Dict[str, Any]:
    return {"success": True, "tipo": tipo, "stages": processing_stages(tipo)}


@router.post("/tickets", response_model=TicketResult)
async def create_ticket(payload: TicketRequest) -> TicketResult:
    return await process_ticket(payload.tipo, payload.titulo, payload.descricao)
