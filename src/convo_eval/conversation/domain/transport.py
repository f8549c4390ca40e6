"""Messaging-channel webhook payloads and the transport port that delivers them."""

import re
from typing import Any, Literal, Protocol

from pydantic import BaseModel

from convo_eval.core.ids import alphanumeric

_PHONE_PUNCTUATION = re.compile(r"[()\s-]")


class InboundMessage(BaseModel, frozen=True):
    sender: str
    message_id: str
    kind: Literal["text", "interactive"] = "text"
    text: str = ""
    interactive_id: str = ""
    interactive_title: str = ""
    profile_name: str = "Eval Runner"


class WebhookDelivery(BaseModel, frozen=True):
    ok: bool
    status: int
    body: Any = None


class WebhookTransport(Protocol):
    async def deliver(
        self, payload: dict[str, Any], request_id: str
    ) -> WebhookDelivery: ...


def digits_only(raw: str | None) -> str:
    return _PHONE_PUNCTUATION.sub("", (raw or "").strip()).removeprefix("+")


def webhook_message_id(request_id: str, suffix: str | int) -> str:
    return f"wamid_{alphanumeric(request_id)[:28]}_{suffix}"


def build_webhook_payload(message: InboundMessage) -> dict[str, Any]:
    """Wrap a single inbound message in the business-account webhook envelope."""
    body: dict[str, Any] = {
        "from": message.sender,
        "id": message.message_id,
        "type": message.kind,
    }
    if message.kind == "text":
        body["text"] = {"body": message.text}
    else:
        body["interactive"] = {
            "button_reply": {
                "id": message.interactive_id,
                "title": message.interactive_title or message.interactive_id,
            }
        }
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "wa_entry",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "contacts": [{"profile": {"name": message.profile_name}}],
                            "messages": [body],
                        },
                    }
                ],
            }
        ],
    }
