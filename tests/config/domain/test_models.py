"""Tests for validation constraints on config domain models."""

import pytest
from pydantic import ValidationError

from convo_eval.config.domain.config import EvalConfig
from convo_eval.config.domain.judge import JudgeConfig
from convo_eval.config.domain.limits import RunLimits
from convo_eval.config.domain.services import ServicesConfig


def _services() -> ServicesConfig:
    return ServicesConfig(base_url="https://x.example.co", anon_key="a", service_role_key="s")


class TestRunLimits:
    def test_defaults(self) -> None:
        limits = RunLimits()
        assert limits.max_scenarios == 10
        assert limits.max_turns_per_scenario == 8
        assert limits.budget_usd == 0.0
        assert limits.user_difficulty == "mid"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_scenarios", 0),
            ("max_scenarios", 51),
            ("max_turns_per_scenario", 51),
            ("bilan_actions_count", 21),
            ("budget_usd", -1.0),
            ("user_difficulty", "extreme"),
        ],
    )
    def test_rejects_out_of_range_values(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            RunLimits.model_validate({field: value})

    def test_is_frozen(self) -> None:
        limits = RunLimits()
        with pytest.raises(ValidationError):
            limits.max_scenarios = 3  # type: ignore[misc]


class TestJudgeConfig:
    def test_rejects_temperature_above_two(self) -> None:
        with pytest.raises(ValidationError):
            JudgeConfig(model="m", temperature=2.5)

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            JudgeConfig.model_validate({"type": "openai", "model": "m"})


class TestEvalConfig:
    def test_bank_mode_without_path_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="plan_bank_path"):
            EvalConfig(
                name="x",
                services=_services(),
                judge=JudgeConfig(model="m"),
                limits=RunLimits(use_pre_generated_plans=True),
            )

    def test_empty_name_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EvalConfig(name="", services=_services(), judge=JudgeConfig(model="m"))
