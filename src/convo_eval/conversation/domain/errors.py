"""Errors raised by the conversation driver itself."""

from typing import Any

from convo_eval.core.errors import ConvoEvalError


class AgentReplyMissingError(ConvoEvalError):
    """Raised when a simulated turn gets an aborted or empty reply from the agent."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to get an agent reply: {reason}")


class WebhookDeliveryError(ConvoEvalError):
    """Raised when the messaging webhook rejects an inbound payload."""

    def __init__(self, status: int, body: Any) -> None:
        super().__init__(f"Failed to deliver webhook message (status={status}): {body}")
        self.status = status
