"""Error types raised by fixture infrastructure."""

from convo_eval.core.errors import ConvoEvalError


class PlanGenerationError(ConvoEvalError):
    """Raised when the plan generation endpoint fails or returns an unusable body."""

    def __init__(self, reason: str, retriable: bool = False) -> None:
        super().__init__(f"Failed to generate plan: {reason}", retriable=retriable)


class PlanBankLoadError(ConvoEvalError):
    """Raised when the plan bank directory or one of its files cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to load plan bank at {path}: {reason}")
