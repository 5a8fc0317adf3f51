from __future__ import annotations

from typing import Any, Dict, List, Optional

from iaboard.integrations.base import HTTPService, VendorError, vendor_retry
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MailchimpService(HTTPService):
    vendor = "Mailchimp"

    @property
    def base_url(self) -> str:  # type: ignore[override]
        return f"https://{get_settings().mailchimp_server_prefix}.api.mailchimp.com/3.0"

    def _headers(self) -> Dict[str, str]:
        key = get_settings().mailchimp_api_key
        if not key:
            raise ProviderNotConfiguredError("mailchimp")
        return {"Authorization": f"Bearer {key}"}

    @vendor_retry
    async def add_subscriber(
        self,
        email: str,
        list_id: str,
        *,
        first_name: str = "",
        last_name: str = "",
        tags: Optional[List[str]] = None,
        merge_fields: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        headers = self._headers()
        LOGGER.info("Adding Mailchimp subscriber %s to %s", email, list_id)
        payload = {
            "email_address": email,
            "status": "subscribed",
            "merge_fields": {"FNAME": first_name, "LNAME": last_name, **(merge_fields or {})},
            "tags": tags or [],
        }
        async with self._client() as client:
            resp = await client.post(f"/lists/{list_id}/members", json=payload, headers=headers)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            if data.get("title") == "Member Exists":
                return {
                    "success": True,
                    "subscriber_id": data.get("id"),
                    "email": email,
                    "status": "already_subscribed",
                }
            raise VendorError(self.vendor, resp.status_code, str(data.get("detail", "")))

        return {
            "success": True,
            "subscriber_id": data.get("id"),
            "email": data.get("email_address", email),
            "status": data.get("status"),
        }

    async def get_lists(self) -> List[Dict[str, Any]]:
        headers = self._headers()
        async with self._client() as client:
            resp = await client.get("/lists", headers=headers)
        self._raise_for_status(resp)
        return [
            {
                "id": item.get("id"),
                "name": item.get("name"),
                "member_count": (item.get("stats") or {}).get("member_count", 0),
            }
            for item in resp.json().get("lists", [])
        ]
