"""AgentUnderTest Protocol: the black-box message processor being evaluated."""

from typing import Protocol

from pydantic import BaseModel

from convo_eval.conversation.domain.message import ChatMessage


class AgentCallMeta(BaseModel, frozen=True):
    request_id: str
    eval_run_id: str | None = None
    model: str
    channel: str = "web"
    scope: str = "web"
    force_real_ai: bool = True
    context_override: str | None = None


class AgentReply(BaseModel, frozen=True):
    content: str = ""
    mode: str | None = None
    aborted: bool = False

    @property
    def usable(self) -> bool:
        """An aborted or blank reply is the agent coalescing a burst, not an answer."""
        return not self.aborted and bool(self.content.strip())


class AgentUnderTest(Protocol):
    """Structural interface satisfied by any agent-under-test adapter."""

    async def process(
        self,
        user_id: str,
        message: str,
        history: list[ChatMessage],
        meta: AgentCallMeta,
    ) -> AgentReply: ...
