"""Tests for the convo-eval CLI helpers and error exits."""

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from convo_eval.cli.main import app, apply_overrides, output_stem
from convo_eval.config.domain.limits import RunLimits
from convo_eval.config.infrastructure.errors import ConfigValidationError

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

runner = CliRunner()


class TestApplyOverrides:
    def test_no_overrides_returns_same_limits(self) -> None:
        limits = RunLimits(max_scenarios=5)

        result = apply_overrides(
            limits=limits,
            max_scenarios=None,
            max_turns=None,
            budget_usd=None,
            stop_on_first_failure=False,
        )

        assert result is limits

    def test_overrides_replace_configured_values(self) -> None:
        limits = RunLimits(max_scenarios=5, max_turns_per_scenario=6, user_difficulty="hard")

        result = apply_overrides(
            limits=limits,
            max_scenarios=2,
            max_turns=3,
            budget_usd=1.25,
            stop_on_first_failure=True,
        )

        assert result.max_scenarios == 2
        assert result.max_turns_per_scenario == 3
        assert result.budget_usd == 1.25
        assert result.stop_on_first_failure is True
        assert result.user_difficulty == "hard"

    def test_unset_flag_does_not_clear_configured_stop(self) -> None:
        limits = RunLimits(stop_on_first_failure=True)

        result = apply_overrides(
            limits=limits,
            max_scenarios=3,
            max_turns=None,
            budget_usd=None,
            stop_on_first_failure=False,
        )

        assert result.stop_on_first_failure is True

    def test_out_of_range_override_raises(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            apply_overrides(
                limits=RunLimits(),
                max_scenarios=51,
                max_turns=None,
                budget_usd=None,
                stop_on_first_failure=False,
            )

        assert str(exc_info.value).startswith("Failed to validate config")

    def test_negative_budget_raises(self) -> None:
        with pytest.raises(ConfigValidationError):
            apply_overrides(
                limits=RunLimits(),
                max_scenarios=None,
                max_turns=None,
                budget_usd=-1.0,
                stop_on_first_failure=False,
            )


class TestOutputStem:
    def test_stem_format(self) -> None:
        stem = output_stem(
            config_name="coaching-agent-regression",
            batch_request_id="3f2a9c1e-7d4b-4a8e-9f00-123456789abc",
        )

        assert re.fullmatch(r"coaching-agent-regression_\d{8}_3f2a9c1e", stem)

    def test_short_batch_id_kept_whole(self) -> None:
        stem = output_stem(config_name="c", batch_request_id="b-1")

        assert stem.endswith("_b1")


class TestRunCommand:
    def test_missing_config_exits_with_message(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                str(tmp_path / "missing.yaml"),
                str(FIXTURES_DIR / "scenarios.json"),
                "--output-dir",
                str(tmp_path / "out"),
            ],
        )

        assert result.exit_code == 1
        assert "Failed to load config" in result.output

    def test_invalid_log_format_exits(self) -> None:
        result = runner.invoke(
            app,
            [
                str(FIXTURES_DIR / "valid_config.yaml"),
                str(FIXTURES_DIR / "scenarios.json"),
                "--log-format",
                "xml",
            ],
        )

        assert result.exit_code == 1
        assert "Invalid log format" in result.output

    def test_out_of_range_override_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("EVAL_ANON_KEY", "anon")
        monkeypatch.setenv("EVAL_SERVICE_ROLE_KEY", "service")

        result = runner.invoke(
            app,
            [
                str(FIXTURES_DIR / "valid_config.yaml"),
                str(FIXTURES_DIR / "scenarios.json"),
                "--max-scenarios",
                "99",
                "--log-format",
                "json",
                "--output-dir",
                str(tmp_path / "out"),
            ],
        )

        assert result.exit_code == 1
        assert "Failed to validate config" in result.output
        assert not (tmp_path / "out").exists()
