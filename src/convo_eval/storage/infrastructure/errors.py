"""Error types raised by the backing-store adapter."""

from convo_eval.core.errors import ConvoEvalError


class StoreRequestError(ConvoEvalError):
    """Raised when a REST or admin call to the backing store does not succeed."""

    def __init__(self, operation: str, status: int, detail: str) -> None:
        super().__init__(
            f"Failed to {operation}: status {status}: {detail}",
            retriable=status in (429, 502, 503, 504),
        )
        self.operation = operation
        self.status = status
