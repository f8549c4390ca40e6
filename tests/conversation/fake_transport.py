"""RecordingTransport: in-memory WebhookTransport recording every payload."""

from typing import Any

from convo_eval.conversation.domain.transport import WebhookDelivery


class RecordingTransport:
    """Satisfies the WebhookTransport protocol; answers with a fixed status."""

    def __init__(self, status: int = 200) -> None:
        self._status = status
        self.payloads: list[dict[str, Any]] = []

    async def deliver(self, payload: dict[str, Any], request_id: str) -> WebhookDelivery:
        self.payloads.append(payload)
        return WebhookDelivery(
            ok=200 <= self._status < 300, status=self._status, body={"ok": True}
        )

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [p["entry"][0]["changes"][0]["value"]["messages"][0] for p in self.payloads]
