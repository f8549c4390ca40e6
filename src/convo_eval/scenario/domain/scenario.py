"""Scenario: an immutable, declarative test case for one conversation."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from convo_eval.assertion.domain.mechanical import MechanicalAssertionSet

type Channel = Literal["web", "whatsapp"]

VITALS_TAG = "bilan.vitals"
MESSAGING_DEFAULT_ACTIVE_ACTIONS = 2


class ScenarioStep(BaseModel, frozen=True):
    user: str = Field(min_length=1)
    # Send this message and the next one (or the burst_group) concurrently.
    burst_delay_ms: int | None = Field(default=None, ge=1, le=20_000)
    burst_group: list[str] | None = Field(default=None, min_length=1, max_length=8)


class WebhookStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["text", "interactive"] = "text"
    text: str = ""
    interactive_id: str = ""
    interactive_title: str | None = None
    sender: str | None = Field(default=None, alias="from")
    profile_name: str = "Eval Runner"


class PreseedAction(BaseModel, frozen=True):
    """A tracked item that must exist before the conversation starts."""

    title: str = Field(min_length=1)
    description: str = ""
    type: str = "mission"
    tracking_type: str = "boolean"
    target_reps: int | None = None
    time_of_day: str = "any_time"
    status: Literal["active", "pending"] = "active"


class PreseedActionEntry(BaseModel, frozen=True):
    title: str = Field(min_length=1)
    days: int = 7
    status: Literal["completed", "missed", "partial"] = "missed"
    note: str | None = None


class ScenarioSetup(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    seed_plan: bool = True
    active_actions_count: int | None = None
    preseed_actions: list[PreseedAction] = Field(default_factory=list)
    preseed_action_entries: list[PreseedActionEntry] = Field(default_factory=list)
    keep_test_user: bool = False
    phone_number: str | None = None
    phone_verified: bool = False
    phone_invalid: bool = False
    whatsapp_opted_in: bool = False
    whatsapp_state: str | None = None
    trial_end: str | None = None


class Scenario(BaseModel):
    """Business key is (dataset_key, id); ``id`` alone is not assumed unique."""

    model_config = ConfigDict(frozen=True, extra="allow")

    dataset_key: str = Field(min_length=1)
    id: str = Field(min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    persona: Any = None
    objectives: list[Any] = Field(default_factory=list)
    steps: list[ScenarioStep] = Field(default_factory=list)
    suggested_replies: list[str] | None = Field(default=None, max_length=10)
    assertions: dict[str, Any] | None = None
    mechanical_assertions: MechanicalAssertionSet | None = None
    channel: Channel = "web"
    setup: ScenarioSetup = ScenarioSetup()
    wa_steps: list[WebhookStep] = Field(default_factory=list)
    wa_auto_simulate: bool = False
    wa_force_turns: bool = False
    wa_simulate_plan_activation_on_done: bool = False

    @property
    def is_messaging(self) -> bool:
        return self.channel == "whatsapp"

    @property
    def scope(self) -> str:
        return "whatsapp" if self.is_messaging else "web"

    @property
    def include_vitals_in_bilan(self) -> bool:
        return VITALS_TAG in self.tags or bool(
            (self.assertions or {}).get("include_vitals_in_bilan")
        )

    @property
    def active_actions_count(self) -> int | None:
        if self.setup.active_actions_count is not None:
            return self.setup.active_actions_count
        return MESSAGING_DEFAULT_ACTIVE_ACTIONS if self.is_messaging else None
