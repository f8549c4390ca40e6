"""CompositeOrchestratorObserver: fans out all events to a list of observers."""

from convo_eval.evaluation.domain.observer import OrchestratorObserver


class CompositeOrchestratorObserver:
    """Delegates every observer event to each observer in order.

    Does NOT inherit from OrchestratorObserver (structural typing via Protocol).
    """

    def __init__(self, observers: list[OrchestratorObserver]) -> None:
        self._observers = observers

    def batch_started(self, batch_request_id: str, total_scenarios: int) -> None:
        for obs in self._observers:
            obs.batch_started(batch_request_id=batch_request_id, total_scenarios=total_scenarios)

    def batch_completed(
        self,
        batch_request_id: str,
        ran: int,
        total_cost_usd: float,
        elapsed_seconds: float,
    ) -> None:
        for obs in self._observers:
            obs.batch_completed(
                batch_request_id=batch_request_id,
                ran=ran,
                total_cost_usd=total_cost_usd,
                elapsed_seconds=elapsed_seconds,
            )

    def batch_stopped(self, batch_request_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.batch_stopped(batch_request_id=batch_request_id, reason=reason)

    def scenario_started(
        self, request_id: str, scenario_key: str, index: int, total: int
    ) -> None:
        for obs in self._observers:
            obs.scenario_started(
                request_id=request_id, scenario_key=scenario_key, index=index, total=total
            )

    def scenario_resumed(
        self, request_id: str, eval_run_id: str, test_user_id: str, resumed_turns: int
    ) -> None:
        for obs in self._observers:
            obs.scenario_resumed(
                request_id=request_id,
                eval_run_id=eval_run_id,
                test_user_id=test_user_id,
                resumed_turns=resumed_turns,
            )

    def scenario_already_completed(self, request_id: str, eval_run_id: str) -> None:
        for obs in self._observers:
            obs.scenario_already_completed(request_id=request_id, eval_run_id=eval_run_id)

    def scenario_identity_created(self, request_id: str, test_user_id: str) -> None:
        for obs in self._observers:
            obs.scenario_identity_created(request_id=request_id, test_user_id=test_user_id)

    def scenario_completed(
        self,
        request_id: str,
        scenario_key: str,
        issues: int,
        mechanical_issues: int,
        cost_usd: float,
    ) -> None:
        for obs in self._observers:
            obs.scenario_completed(
                request_id=request_id,
                scenario_key=scenario_key,
                issues=issues,
                mechanical_issues=mechanical_issues,
                cost_usd=cost_usd,
            )

    def scenario_failed(self, request_id: str, scenario_key: str, reason: str) -> None:
        for obs in self._observers:
            obs.scenario_failed(request_id=request_id, scenario_key=scenario_key, reason=reason)

    def identity_cleanup_failed(self, request_id: str, test_user_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.identity_cleanup_failed(
                request_id=request_id, test_user_id=test_user_id, reason=reason
            )

    def run_record_failed(self, request_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.run_record_failed(request_id=request_id, reason=reason)
