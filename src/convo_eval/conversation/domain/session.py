"""ConversationSession: everything the driver needs to run one scenario's turns."""

from typing import Any

from pydantic import BaseModel, Field

from convo_eval.conversation.domain.message import ChatMessage


class ConversationSession(BaseModel, frozen=True):
    user_id: str
    request_id: str
    eval_run_id: str | None = None
    scope: str = "web"
    # Persisted history reloaded on resume; empty on a fresh run.
    history: list[ChatMessage] = Field(default_factory=list)
    chat_state_before: dict[str, Any] | None = None
    max_turns: int = Field(ge=1)
    bilan_actions_count: int = Field(default=0, ge=0)
    deferral: bool = False
    difficulty: str = "mid"
    model: str
    plan_context: str = ""
    phone_number: str = ""
    use_real_ai: bool = True
