from __future__ import annotations

import base64
import json
import time
from typing import Any, Dict, Optional

from iaboard.integrations.base import HTTPService, IntegrationError, vendor_retry
from iaboard.settings import get_settings
from iaboard.utils.errors import ProviderNotConfiguredError
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


def encode_event(token: str, event: str, properties: Dict[str, Any], distinct_id: str) -> str:
    payload = {
        "event": event,
        "properties": {"token": token, "time": int(time.time()), **properties},
        "distinct_id": distinct_id,
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


class MixpanelService(HTTPService):
    vendor = "Mixpanel"
    base_url = "https://api.mixpanel.com"

    @vendor_retry
    async def track_event(
        self,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
        distinct_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        token = get_settings().mixpanel_token
        if not token:
            raise ProviderNotConfiguredError("mixpanel", "MIXPANEL_TOKEN")

        LOGGER.info("Tracking Mixpanel event: %s", event)
        data = encode_event(
            token, event, properties or {}, distinct_id or f"user_{int(time.time() * 1000)}"
        )
        async with self._client() as client:
            resp = await client.post("/track", data={"data": data})
        self._raise_for_status(resp)

        if resp.text.strip() != "1":
            raise IntegrationError(self.vendor, f"Mixpanel tracking failed: {resp.text[:100]}")
        return {"success": True, "events_tracked": 1}