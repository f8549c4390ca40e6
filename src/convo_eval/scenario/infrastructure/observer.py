"""Structlog implementation of the ScenarioObserver port."""

import structlog


class StructlogScenarioObserver:
    """Delegates scenario loading events to structlog."""

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def scenario_loading_started(self, path: str) -> None:
        self._log.info("scenario.loading_started", path=path)

    def scenario_loaded(self, dataset_key: str, scenario_id: str) -> None:
        self._log.debug("scenario.loaded", dataset_key=dataset_key, scenario_id=scenario_id)

    def scenario_loading_completed(self, path: str, total_scenarios: int) -> None:
        self._log.info(
            "scenario.loading_completed", path=path, total_scenarios=total_scenarios
        )

    def scenario_loading_failed(self, path: str, reason: str) -> None:
        self._log.error("scenario.loading_failed", path=path, reason=reason)
