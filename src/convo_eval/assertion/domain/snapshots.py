"""StateSnapshots: the externally visible state the engine asserts against."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from convo_eval.conversation.domain.message import ChatMessage


class StateSnapshots(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: dict[str, Any] | None = None
    chat_state: dict[str, Any] | None = None
    plan: dict[str, Any] | None = None
    transcript: list[ChatMessage] = Field(default_factory=list)
    logged_issues: list[str] = Field(default_factory=list)

    @property
    def temp_memory(self) -> Any:
        if self.chat_state is None:
            return None
        return self.chat_state.get("temp_memory")

    @property
    def plan_actions(self) -> list[Any]:
        return _list_at(self.plan, "actions")

    @property
    def plan_frameworks(self) -> list[Any]:
        return _list_at(self.plan, "frameworks")

    def assistant_text(self) -> str:
        return "\n".join(m.content for m in self.transcript if m.role == "assistant")

    def user_turns(self) -> list[str]:
        return [m.content for m in self.transcript if m.role == "user"]


def _list_at(tree: dict[str, Any] | None, key: str) -> list[Any]:
    if tree is None:
        return []
    value = tree.get(key)
    return value if isinstance(value, list) else []
