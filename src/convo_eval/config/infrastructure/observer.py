"""Structlog implementation of the ConfigObserver port."""

import structlog


class StructlogConfigObserver:
    """Delegates config domain events to structlog.

    Satisfies the ConfigObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def config_loaded(self, name: str) -> None:
        self._log.info("config.loaded", name=name)

    def config_judge_temperature_warning(self, temperature: float) -> None:
        self._log.warning(
            "config.judge_temperature_warning",
            temperature=temperature,
            message="Judge temperature > 0.0 may produce non-deterministic verdicts",
        )

    def config_plan_bank_unused_warning(self, plan_bank_path: str) -> None:
        self._log.warning(
            "config.plan_bank_unused_warning",
            plan_bank_path=plan_bank_path,
            message="plan_bank_path is set but limits.use_pre_generated_plans is false",
        )
