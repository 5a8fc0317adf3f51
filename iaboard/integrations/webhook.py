from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from iaboard.integrations.base import HTTPService, vendor_retry
from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WebhookService(HTTPService):
    """Forwards automation events to the configured Zapier catch hook."""

    vendor = "Zapier"
    timeout = 15.0

    @vendor_retry
    async def trigger(
        self, event_type: str, data: Optional[Dict[str, Any]] = None, user_id: str = "anonymous"
    ) -> Dict[str, Any]:
        url = get_settings().zapier_webhook_url
        if not url:
            LOGGER.info("Webhook URL not configured, event %s logged locally", event_type)
            return {
                "success": True,
                "result": "Webhook URL não configurada - evento registrado localmente",
                "webhook": {"status": "not_configured", "event_type": event_type},
            }

        payload = {
            "event_type": event_type,
            "data": data or {},
            "timestamp": datetime.utcnow().isoformat(),
            "source": "IA Board",
            "user_id": user_id,
        }
        async with self._client(base_url="") as client:
            resp = await client.post(url, json=payload)
        self._raise_for_status(resp)
        return {
            "success": True,
            "result": "Automação disparada com sucesso",
            "webhook": {"status": "sent", "event_type": event_type},
        }
