"""Base exception class for all convo-eval-specific errors."""


class ConvoEvalError(Exception):
    """Base class for all convo-eval errors."""

    def __init__(self, message: str, retriable: bool = False) -> None:
        super().__init__(message)
        self.retriable = retriable
