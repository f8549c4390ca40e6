"""Error types raised by judge infrastructure."""

from convo_eval.core.errors import ConvoEvalError


class JudgeInvocationError(ConvoEvalError):
    """Raised when the judge cannot be invoked or returns an unparseable response."""

    def __init__(self, reason: str, retriable: bool = False) -> None:
        super().__init__(f"Failed to judge conversation: {reason}", retriable=retriable)


class JudgeTypeNotSupportedError(ConvoEvalError):
    """Raised when JudgeConfig.type names no known judge implementation."""

    def __init__(self, judge_type: str) -> None:
        super().__init__(f"Failed to create judge: unsupported judge type '{judge_type}'")
