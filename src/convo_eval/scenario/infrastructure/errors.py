"""Error types raised by scenario infrastructure."""

from convo_eval.core.errors import ConvoEvalError


class ScenarioLoadError(ConvoEvalError):
    """Raised when a scenario file cannot be loaded or is malformed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to load scenarios: {reason}")
