"""YAML config loader: parses, interpolates env vars, validates, and emits observer events."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from convo_eval.config.domain.config import EvalConfig
from convo_eval.config.domain.observer import ConfigObserver
from convo_eval.config.infrastructure.env_interpolation import (
    collect_missing_vars,
    interpolate,
)
from convo_eval.config.infrastructure.errors import (
    ConfigLoadError,
    ConfigValidationError,
    MissingEnvVarsError,
)


class YamlConfigLoader:
    """Loads, interpolates, validates, and returns an EvalConfig from a YAML file."""

    def __init__(self, observer: ConfigObserver) -> None:
        self._observer = observer

    def load(self, path: Path) -> EvalConfig:
        """
        Load, interpolate, validate, and return an EvalConfig from a YAML file.

        Raises:
            ConfigLoadError: if the file does not exist.
            MissingEnvVarsError: if any ${ENV_VAR} references are unset (all collected first).
            ConfigValidationError: if the document is not a mapping or violates the schema.
            yaml.YAMLError: if the file is not valid YAML.
        """
        raw = _parse_yaml(path=path)
        _check_missing_env_vars(raw=raw)
        cfg = _build_config(resolved=interpolate(raw))
        _emit_warnings(cfg=cfg, observer=self._observer)
        self._observer.config_loaded(name=cfg.name)
        return cfg


def _parse_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh)
    except FileNotFoundError as exc:
        raise ConfigLoadError(path) from exc


def _check_missing_env_vars(raw: Any) -> None:
    missing = collect_missing_vars(raw)
    if missing:
        raise MissingEnvVarsError(missing)


def _build_config(resolved: Any) -> EvalConfig:
    if not isinstance(resolved, dict):
        raise ConfigValidationError("top-level document must be a mapping")
    try:
        return EvalConfig.model_validate(resolved)
    except ValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc


def _emit_warnings(cfg: EvalConfig, observer: ConfigObserver) -> None:
    if cfg.judge.temperature > 0.0:
        observer.config_judge_temperature_warning(cfg.judge.temperature)
    if cfg.plan_bank_path is not None and not cfg.limits.use_pre_generated_plans:
        observer.config_plan_bank_unused_warning(str(cfg.plan_bank_path))
