"""Error types raised by conversation infrastructure."""

from convo_eval.core.errors import ConvoEvalError


class AgentInvocationError(ConvoEvalError):
    """Raised when the agent under test cannot be invoked or returns an error response."""

    def __init__(self, reason: str, retriable: bool = False) -> None:
        super().__init__(f"Failed to invoke agent: {reason}", retriable=retriable)


class SimulatorInvocationError(ConvoEvalError):
    """Raised when the user simulator cannot produce the next turn."""

    def __init__(self, reason: str, retriable: bool = False) -> None:
        super().__init__(f"Failed to simulate user turn: {reason}", retriable=retriable)
