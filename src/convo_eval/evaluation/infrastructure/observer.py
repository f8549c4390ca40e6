"""Structlog implementation of the OrchestratorObserver port."""

import structlog


class StructlogOrchestratorObserver:
    """Delegates orchestrator events to structlog.

    Satisfies the OrchestratorObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def batch_started(self, batch_request_id: str, total_scenarios: int) -> None:
        self._log.info(
            "orchestrator.batch.started",
            batch_request_id=batch_request_id,
            total_scenarios=total_scenarios,
        )

    def batch_completed(
        self,
        batch_request_id: str,
        ran: int,
        total_cost_usd: float,
        elapsed_seconds: float,
    ) -> None:
        self._log.info(
            "orchestrator.batch.completed",
            batch_request_id=batch_request_id,
            ran=ran,
            total_cost_usd=total_cost_usd,
            elapsed_seconds=round(elapsed_seconds, 2),
        )

    def batch_stopped(self, batch_request_id: str, reason: str) -> None:
        self._log.warning(
            "orchestrator.batch.stopped", batch_request_id=batch_request_id, reason=reason
        )

    def scenario_started(
        self, request_id: str, scenario_key: str, index: int, total: int
    ) -> None:
        self._log.info(
            "orchestrator.scenario.started",
            request_id=request_id,
            scenario_key=scenario_key,
            index=index,
            total=total,
        )

    def scenario_resumed(
        self, request_id: str, eval_run_id: str, test_user_id: str, resumed_turns: int
    ) -> None:
        self._log.info(
            "orchestrator.scenario.resumed",
            request_id=request_id,
            eval_run_id=eval_run_id,
            test_user_id=test_user_id,
            resumed_turns=resumed_turns,
        )

    def scenario_already_completed(self, request_id: str, eval_run_id: str) -> None:
        self._log.info(
            "orchestrator.scenario.already_completed",
            request_id=request_id,
            eval_run_id=eval_run_id,
        )

    def scenario_identity_created(self, request_id: str, test_user_id: str) -> None:
        self._log.info(
            "orchestrator.identity.created", request_id=request_id, test_user_id=test_user_id
        )

    def scenario_completed(
        self,
        request_id: str,
        scenario_key: str,
        issues: int,
        mechanical_issues: int,
        cost_usd: float,
    ) -> None:
        self._log.info(
            "orchestrator.scenario.completed",
            request_id=request_id,
            scenario_key=scenario_key,
            issues=issues,
            mechanical_issues=mechanical_issues,
            cost_usd=cost_usd,
        )

    def scenario_failed(self, request_id: str, scenario_key: str, reason: str) -> None:
        self._log.error(
            "orchestrator.scenario.failed",
            request_id=request_id,
            scenario_key=scenario_key,
            reason=reason,
        )

    def identity_cleanup_failed(self, request_id: str, test_user_id: str, reason: str) -> None:
        self._log.warning(
            "orchestrator.identity.cleanup_failed",
            request_id=request_id,
            test_user_id=test_user_id,
            reason=reason,
        )

    def run_record_failed(self, request_id: str, reason: str) -> None:
        self._log.error("orchestrator.run_record.failed", request_id=request_id, reason=reason)
