"""Observer port for the orchestrator: defines batch events in domain language."""

from typing import Protocol


class OrchestratorObserver(Protocol):
    """Observer port emitting structured events while a batch runs.

    Implementations may log to structlog, render progress, or record for tests.
    """

    def batch_started(self, batch_request_id: str, total_scenarios: int) -> None: ...

    def batch_completed(
        self,
        batch_request_id: str,
        ran: int,
        total_cost_usd: float,
        elapsed_seconds: float,
    ) -> None: ...

    def batch_stopped(self, batch_request_id: str, reason: str) -> None: ...

    def scenario_started(
        self, request_id: str, scenario_key: str, index: int, total: int
    ) -> None: ...

    def scenario_resumed(
        self, request_id: str, eval_run_id: str, test_user_id: str, resumed_turns: int
    ) -> None: ...

    def scenario_already_completed(self, request_id: str, eval_run_id: str) -> None: ...

    def scenario_identity_created(self, request_id: str, test_user_id: str) -> None: ...

    def scenario_completed(
        self,
        request_id: str,
        scenario_key: str,
        issues: int,
        mechanical_issues: int,
        cost_usd: float,
    ) -> None: ...

    def scenario_failed(self, request_id: str, scenario_key: str, reason: str) -> None: ...

    def identity_cleanup_failed(self, request_id: str, test_user_id: str, reason: str) -> None: ...

    def run_record_failed(self, request_id: str, reason: str) -> None: ...
