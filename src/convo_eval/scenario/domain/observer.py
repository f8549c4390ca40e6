"""Observer port for scenario loading."""

from typing import Protocol


class ScenarioObserver(Protocol):
    def scenario_loading_started(self, path: str) -> None: ...

    def scenario_loaded(self, dataset_key: str, scenario_id: str) -> None: ...

    def scenario_loading_completed(self, path: str, total_scenarios: int) -> None: ...

    def scenario_loading_failed(self, path: str, reason: str) -> None: ...
