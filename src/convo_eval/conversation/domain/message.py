"""ChatMessage and transcript normalisation."""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict

type Role = Literal["user", "assistant"]

_CONTROL_CHARS = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F]")


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Role
    content: str
    agent_used: str | None = None


def user(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def assistant(content: str, mode: str | None) -> ChatMessage:
    return ChatMessage(role="assistant", content=content, agent_used=mode)


def build_transcript(history: list[ChatMessage]) -> list[ChatMessage]:
    """Drop empty messages and collapse consecutive same-role duplicates.

    The runner's own history is the canonical transcript; the backing store can
    hold extra rows from debounce bursts or retries.
    """
    out: list[ChatMessage] = []
    for message in history:
        content = _CONTROL_CHARS.sub(" ", message.content)
        if not content.strip():
            continue
        if out and out[-1].role == message.role and _norm(out[-1].content) == _norm(content):
            continue
        out.append(message.model_copy(update={"content": content}))
    return out


def count_user_turns(history: list[ChatMessage]) -> int:
    return sum(1 for m in history if m.role == "user")


def _norm(text: str) -> str:
    return text.strip().lower()
