from __future__ import annotations

from typing import Any, Dict, List, Optional

from iaboard.integrations.base import HTTPService, IntegrationError, vendor_retry
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

NOTION_VERSION = "2022-06-28"
# Notion rejects rich_text items above 2000 characters
_CHUNK = 2000


def paragraph_blocks(content: str) -> List[Dict[str, Any]]:
    return [
        {
            "object": "block",
            "type": "paragraph",
            "paragraph": {
                "rich_text": [{"type": "text", "text": {"content": content[i:i + _CHUNK]}}]
            },
        }
        for i in range(0, len(content), _CHUNK)
    ]


class NotionService(HTTPService):
    vendor = "Notion"
    base_url = "https://api.notion.com/v1"

    def _headers(self) -> Dict[str, str]:
        key = get_settings().notion_api_key
        if not key:
            raise ProviderNotConfiguredError("notion")
        return {"Authorization": f"Bearer {key}", "Notion-Version": NOTION_VERSION}

    async def _default_parent(self, headers: Dict[str, str]) -> str:
        configured = get_settings().notion_parent_page_id
        if configured:
            return configured
        async with self._client() as client:
            resp = await client.post(
                "/search",
                json={"filter": {"property": "object", "value": "page"}, "page_size": 1},
                headers=headers,
            )
        self._raise_for_status(resp)
        results = resp.json().get("results") or []
        if not results:
            raise IntegrationError(self.vendor, "No Notion page available as parent; set NOTION_PARENT_PAGE_ID")
        return results[0]["id"]

    @vendor_retry
    async def create_page(
        self,
        title: str,
        content: str = "",
        database_id: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = self._headers()
        LOGGER.info("Creating Notion page: %s", title)
        parent = (
            {"database_id": database_id}
            if database_id
            else {"page_id": await self._default_parent(headers)}
        )
        payload = {
            "parent": parent,
            "properties": {
                "title": {"title": [{"text": {"content": title}}]},
                **{k: v for k, v in (properties or {}).items() if v is not None},
            },
            "children": paragraph_blocks(content) if content else [],
        }
        async with self._client() as client:
            resp = await client.post("/pages", json=payload, headers=headers)
        self._raise_for_status(resp)

        data = resp.json()
        return {"success": True, "page_id": data.get("id"), "url": data.get("url")}
