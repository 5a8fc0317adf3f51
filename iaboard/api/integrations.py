from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Header

from iaboard.integrations.mailchimp import MailchimpService
from iaboard.integrations.mixpanel import MixpanelService
from iaboard.integrations.notion import NotionService
from iaboard.integrations.typeform import TypeformService
from iaboard.integrations.webhook import WebhookService
from iaboard.utils.schemas import (
    MailchimpSubscribe,
    MixpanelTrack,
    NotionPageCreate,
    TypeformCreate,
    WebhookTrigger,
)

router = APIRouter(prefix="/api/integrations", tags=["integrations"])

# Swapped in tests for services bound to a mock transport
services: Dict[str, Any] = {
    "typeform": TypeformService(),
    "mailchimp": MailchimpService(),
    "mixpanel": MixpanelService(),
    "notion": NotionService(),
    "webhook": WebhookService(),
}


@router.post("/typeform/forms")
async def create_form(payload: TypeformCreate) -> Dict[str, Any]:
    return await services["typeform"].create_form(payload.title, payload.fields)


@router.get("/typeform/forms/{form_id}/responses")
async def form_responses(form_id: str) -> Dict[str, Any]:
    responses = await services["typeform"].get_responses(form_id)
    return {"success": True, "responses": responses}


@router.post("/mailchimp/subscribers")
async def add_subscriber(payload: MailchimpSubscribe) -> Dict[str, Any]:
    return await services["mailchimp"].add_subscriber(
        payload.email,
        payload.listId,
        first_name=payload.firstName,
        last_name=payload.lastName,
        tags=payload.tags,
    )


@router.get("/mailchimp/lists")
async def mailchimp_lists() -> Dict[str, Any]:
    lists = await services["mailchimp"].get_lists()
    return {"success": True, "lists": lists}


@router.post("/mixpanel/track")
async def track_event(payload: MixpanelTrack) -> Dict[str, Any]:
    return await services["mixpanel"].track_event(payload.event, payload.properties, payload.distinctId)


@router.post("/notion/pages")
async def create_page(payload: NotionPageCreate) -> Dict[str, Any]:
    return await services["notion"].create_page(payload.title, payload.content, payload.databaseId)


@router.post("/webhook/trigger")
async def trigger_webhook(
    payload: WebhookTrigger, x_user_id: str = Header(default="anonymous")
) -> Dict[str, Any]:
    return await services["webhook"].trigger(payload.event_type, payload.data, user_id=x_user_id)
