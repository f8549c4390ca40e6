"""HttpWebhookTransport: posts synthetic inbound payloads to the messaging webhook."""

from typing import Any

import httpx

from convo_eval.conversation.domain.transport import WebhookDelivery
from convo_eval.core.http import ServiceClient


class HttpWebhookTransport:
    """Satisfies the WebhookTransport protocol structurally.

    Non-2xx responses are returned, not raised; the driver decides they are fatal.
    A transport failure is reported the same way, with status 0.
    """

    def __init__(self, client: ServiceClient, path: str) -> None:
        self._client = client
        self._path = path

    async def deliver(self, payload: dict[str, Any], request_id: str) -> WebhookDelivery:
        try:
            response = await self._client.post(self._path, payload, request_id=request_id)
        except httpx.HTTPError as exc:
            return WebhookDelivery(ok=False, status=0, body=str(exc) or type(exc).__name__)
        return WebhookDelivery(ok=response.ok, status=response.status, body=response.body)
