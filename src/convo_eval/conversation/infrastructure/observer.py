"""Structlog implementation of the ConversationObserver port."""

import structlog


class StructlogConversationObserver:
    """Delegates conversation domain events to structlog.

    Satisfies the ConversationObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def conversation_started(
        self, request_id: str, scenario_id: str, channel: str, resumed_turns: int
    ) -> None:
        self._log.info(
            "conversation.started",
            request_id=request_id,
            scenario_id=scenario_id,
            channel=channel,
            resumed_turns=resumed_turns,
        )

    def conversation_phase_entered(self, request_id: str, phase: str) -> None:
        self._log.debug("conversation.phase_entered", request_id=request_id, phase=phase)

    def conversation_kickoff_sent(self, request_id: str, message: str) -> None:
        self._log.info("conversation.kickoff_sent", request_id=request_id, message=message)

    def conversation_turn_completed(
        self, request_id: str, kind: str, turn: int, assistant_mode: str | None
    ) -> None:
        self._log.info(
            "conversation.turn.completed",
            request_id=request_id,
            kind=kind,
            turn=turn,
            assistant_mode=assistant_mode,
        )

    def conversation_burst_completed(
        self, request_id: str, size: int, delay_ms: int, replies_kept: int
    ) -> None:
        self._log.info(
            "conversation.burst.completed",
            request_id=request_id,
            size=size,
            delay_ms=delay_ms,
            replies_kept=replies_kept,
        )

    def conversation_message_skipped(self, request_id: str, role: str, reason: str) -> None:
        self._log.warning(
            "conversation.message_skipped", request_id=request_id, role=role, reason=reason
        )

    def conversation_webhook_delivered(
        self, request_id: str, message_id: str, status: int
    ) -> None:
        self._log.info(
            "conversation.webhook.delivered",
            request_id=request_id,
            message_id=message_id,
            status=status,
        )

    def conversation_upstream_retry(
        self,
        request_id: str,
        service: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None:
        self._log.warning(
            "conversation.upstream.retry",
            request_id=request_id,
            service=service,
            attempt=attempt,
            reason=reason,
            backoff_seconds=backoff_seconds,
        )

    def conversation_simulator_fallback(self, request_id: str, reason: str) -> None:
        self._log.warning(
            "conversation.simulator_fallback", request_id=request_id, reason=reason
        )

    def conversation_completed(
        self, request_id: str, turns_executed: int, completed_reason: str
    ) -> None:
        self._log.info(
            "conversation.completed",
            request_id=request_id,
            turns_executed=turns_executed,
            completed_reason=completed_reason,
        )
