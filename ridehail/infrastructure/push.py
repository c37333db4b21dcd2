"""
Push gateway client.

Device messaging itself is an external service; this client only posts a
message envelope (token, notification, data) to the configured gateway
URL.  Without a URL the gateway is disabled and messages are dropped
with a log line, which is what local development and tests want.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    """The gateway refused or failed to accept a message."""


class PushGateway:
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, token: str, title: str, body: str, data: dict) -> bool:
        """Deliver one message.  Returns False when the gateway is disabled."""
        if not self.enabled:
            logger.debug("Push gateway disabled, dropping '%s'", title)
            return False

        payload = {
            "token": token,
            "notification": {"title": title, "body": body},
            "data": {k: str(v) for k, v in data.items()},
        }
        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise PushDeliveryError(str(exc)) from exc
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
