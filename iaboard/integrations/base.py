from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IntegrationError(RuntimeError):
    def __init__(self, vendor: str, message: str) -> None:
        self.vendor = vendor
        super().__init__(message)


class VendorError(IntegrationError):
    """Non-2xx answer from a marketing vendor."""

    def __init__(self, vendor: str, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        if status_code == 401:
            message = f"{vendor} authentication failed. Please check API key."
        elif status_code == 403:
            message = f"{vendor} access denied. API key may be invalid or expired."
        else:
            message = f"{vendor} API error: {status_code} - {detail[:300]}"
        super().__init__(vendor, message)


def _transient(exc: BaseException) -> bool:
    return isinstance(exc, VendorError) and (exc.status_code == 429 or exc.status_code >= 500)


# Rate limits, 5xx and connection drops are retried; auth and validation errors are not
vendor_retry = retry(
    retry=retry_if_exception_type(httpx.TransportError) | retry_if_exception(_transient),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    before_sleep=before_sleep_log(LOGGER, logging.INFO),
    reraise=True,
)


class HTTPService:
    vendor = "vendor"
    base_url = ""
    timeout = 30.0

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=kwargs.pop("base_url", self.base_url),
            timeout=self.timeout,
            transport=self._transport,
            **kwargs,
        )

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code >= 400:
            raise VendorError(self.vendor, resp.status_code, _detail(resp))


def _detail(resp: httpx.Response) -> str:
    try:
        body: Dict[str, Any] = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body.get("description") or body)
    return str(body)
