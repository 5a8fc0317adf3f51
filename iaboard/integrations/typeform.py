from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from iaboard.integrations.base import HTTPService, IntegrationError, vendor_retry
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class FormField(BaseModel):
    type: Literal["short_text", "long_text", "email", "multiple_choice", "rating"]
    title: str
    required: bool = False
    choices: Optional[List[str]] = None


def build_form_payload(title: str, fields: List[FormField]) -> Dict[str, Any]:
    mapped = []
    for index, field in enumerate(fields, start=1):
        properties: Dict[str, Any] = {
            "description": f"Campo {index} do formulário {title}",
            "required": field.required,
        }
        if field.choices:
            properties["choices"] = [{"label": choice} for choice in field.choices]
        mapped.append({"title": field.title, "type": field.type, "properties": properties})

    return {
        "title": title,
        "type": "form",
        "workspace": {"href": "https://api.typeform.com/workspaces/default"},
        "fields": mapped,
        "settings": {
            "language": "pt",
            "progress_bar": "proportion",
            "meta": {"allow_indexing": False},
        },
        "theme": {"href": "https://api.typeform.com/themes/6lPNE6"},
    }


class TypeformService(HTTPService):
    vendor = "Typeform"
    base_url = "https://api.typeform.com"

    def _headers(self) -> Dict[str, str]:
        key = get_settings().typeform_api_key
        if not key:
            raise ProviderNotConfiguredError("typeform")
        return {"Authorization": f"Bearer {key}"}

    @vendor_retry
    async def create_form(self, title: str, fields: List[FormField]) -> Dict[str, Any]:
        headers = self._headers()
        started = time.monotonic()
        LOGGER.info("Creating Typeform: %s", title)
        async with self._client() as client:
            resp = await client.post("/forms", json=build_form_payload(title, fields), headers=headers)
        self._raise_for_status(resp)

        data = resp.json()
        if not data.get("id"):
            raise IntegrationError(self.vendor, "Invalid response from Typeform")
        return {
            "success": True,
            "formId": data["id"],
            "formUrl": (data.get("_links") or {}).get("display"),
            "metadata": {
                "title": title,
                "fieldCount": len(fields),
                "provider": "Typeform",
                "createdAt": datetime.utcnow().isoformat(),
                "processingTime": int((time.monotonic() - started) * 1000),
            },
        }

    async def get_responses(self, form_id: str) -> List[Dict[str, Any]]:
        headers = self._headers()
        async with self._client() as client:
            resp = await client.get(f"/forms/{form_id}/responses", headers=headers)
        self._raise_for_status(resp)
        return resp.json().get("items") or []


FEEDBACK_FORM = [
    FormField(type="short_text", title="Nome", required=True),
    FormField(type="long_text", title="Opinião sobre o IA Board", required=True),
]
