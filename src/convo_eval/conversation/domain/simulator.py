"""UserSimulator Protocol: produces the next user turn from the transcript so far."""

from typing import Any, Protocol

from pydantic import BaseModel, Field

from convo_eval.conversation.domain.message import ChatMessage


class SimulationRequest(BaseModel, frozen=True):
    persona: Any
    objectives: list[Any] = Field(default_factory=list)
    transcript: list[ChatMessage] = Field(default_factory=list)
    turn_index: int = Field(ge=0)
    max_turns: int = Field(ge=1)
    difficulty: str = "mid"
    context: str = ""
    model: str | None = None
    suggested_replies: list[str] | None = None
    chat_state: dict[str, Any] | None = None
    eval_run_id: str | None = None
    force_real_ai: bool = True
    # Callers that can handle a silent user (they stop the loop) set this.
    allow_empty: bool = False


class SimulatedTurn(BaseModel, frozen=True):
    next_message: str = ""
    done: bool = False


class UserSimulator(Protocol):
    async def simulate(
        self, request: SimulationRequest, request_id: str
    ) -> SimulatedTurn: ...
