"""StateReader Protocol: read access to the agent's externally visible state."""

from typing import Any, Protocol

from convo_eval.conversation.domain.message import ChatMessage


class StateReader(Protocol):
    async def chat_state(self, user_id: str, scope: str) -> dict[str, Any] | None: ...

    async def messages(
        self, user_id: str, scope: str, limit: int = 400
    ) -> list[ChatMessage]: ...

    async def profile(self, user_id: str) -> dict[str, Any] | None: ...

    async def plan_snapshot(self, user_id: str) -> dict[str, Any] | None: ...

    async def logged_issues(self, eval_run_id: str) -> list[str]: ...
