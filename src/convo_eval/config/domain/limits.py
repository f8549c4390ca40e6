"""RunLimits: batch-wide policy, validated and bounded on ingestion."""

from typing import Literal

from pydantic import BaseModel, Field

type UserDifficulty = Literal["easy", "mid", "hard"]

DEFAULT_EVAL_MODEL = "gemini-2.5-flash"


class RunLimits(BaseModel, frozen=True):
    max_scenarios: int = Field(default=10, ge=1, le=50)
    max_turns_per_scenario: int = Field(default=8, ge=1, le=50)
    bilan_actions_count: int = Field(default=0, ge=0, le=20)
    test_post_checkup_deferral: bool = False
    user_difficulty: UserDifficulty = "mid"
    stop_on_first_failure: bool = False
    budget_usd: float = Field(default=0.0, ge=0.0)
    use_real_ai: bool = True
    judge_force_real_ai: bool = True
    model: str = DEFAULT_EVAL_MODEL
    keep_test_user: bool = False
    use_pre_generated_plans: bool = False
    plan_bank_theme_key: str | None = None
