"""Driver phases and the outcome of one driven conversation."""

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

from convo_eval.conversation.domain.message import ChatMessage


class DriverPhase(StrEnum):
    NOT_STARTED = "not_started"
    SCRIPTED_TURNS = "scripted_turns"
    SIMULATED_TURNS = "simulated_turns"
    WEBHOOK_TURNS = "webhook_turns"
    POST_FLOW_TURNS = "post_flow_turns"
    DONE = "done"


class ConversationOutcome(BaseModel, frozen=True):
    transcript: list[ChatMessage]
    turns_executed: int
    completed_reason: Literal["max_turns", "done"]
    phases: list[DriverPhase] = Field(default_factory=list)
    # Messaging channel: state captured right after the scripted webhook steps.
    mechanical_transcript: list[ChatMessage] | None = None
    mechanical_profile: dict[str, Any] | None = None
