"""ConversationObserver port: domain events emitted while driving a conversation."""

from typing import Protocol


class ConversationObserver(Protocol):
    """Implementations may log to structlog or record for tests."""

    def conversation_started(
        self, request_id: str, scenario_id: str, channel: str, resumed_turns: int
    ) -> None: ...

    def conversation_phase_entered(self, request_id: str, phase: str) -> None: ...

    def conversation_kickoff_sent(self, request_id: str, message: str) -> None: ...

    def conversation_turn_completed(
        self, request_id: str, kind: str, turn: int, assistant_mode: str | None
    ) -> None: ...

    def conversation_burst_completed(
        self, request_id: str, size: int, delay_ms: int, replies_kept: int
    ) -> None: ...

    def conversation_message_skipped(
        self, request_id: str, role: str, reason: str
    ) -> None: ...

    def conversation_webhook_delivered(
        self, request_id: str, message_id: str, status: int
    ) -> None: ...

    def conversation_upstream_retry(
        self,
        request_id: str,
        service: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None: ...

    def conversation_simulator_fallback(self, request_id: str, reason: str) -> None: ...

    def conversation_completed(
        self, request_id: str, turns_executed: int, completed_reason: str
    ) -> None: ...
