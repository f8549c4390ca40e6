"""JSON / JSONL scenario loader: returns typed Scenario objects."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from convo_eval.scenario.domain.observer import ScenarioObserver
from convo_eval.scenario.domain.scenario import Scenario
from convo_eval.scenario.infrastructure.errors import ScenarioLoadError


class JsonScenarioLoader:
    """Loads scenarios from a JSON list, a ``{"scenarios": [...]}`` document, or JSONL."""

    def __init__(self, observer: ScenarioObserver) -> None:
        self._observer = observer

    def load(self, path: Path) -> list[Scenario]:
        """
        Load every scenario in path.

        Collects ALL per-entry errors before raising a single ScenarioLoadError.

        Raises:
            ScenarioLoadError: if the file is missing, is not valid JSON/JSONL,
                or any entry fails validation.
        """
        path_str = str(path)
        self._observer.scenario_loading_started(path=path_str)

        try:
            entries = self._read_entries(path=path)
        except FileNotFoundError:
            reason = f"file not found: {path_str}"
            self._observer.scenario_loading_failed(path=path_str, reason=reason)
            raise ScenarioLoadError(reason=reason)
        except ValueError as exc:
            self._observer.scenario_loading_failed(path=path_str, reason=str(exc))
            raise ScenarioLoadError(reason=str(exc)) from exc

        scenarios: list[Scenario] = []
        errors: list[str] = []
        for index, entry in enumerate(entries):
            try:
                scenario = Scenario.model_validate(entry)
            except ValidationError as exc:
                errors.append(f"entry {index}: {exc.error_count()} validation error(s): {exc}")
                continue
            scenarios.append(scenario)
            self._observer.scenario_loaded(
                dataset_key=scenario.dataset_key, scenario_id=scenario.id
            )

        if errors:
            reason = "; ".join(errors)
            self._observer.scenario_loading_failed(path=path_str, reason=reason)
            raise ScenarioLoadError(reason=reason)

        self._observer.scenario_loading_completed(
            path=path_str, total_scenarios=len(scenarios)
        )
        return scenarios

    def _read_entries(self, path: Path) -> list[Any]:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".jsonl":
            entries: list[Any] = []
            for index, line in enumerate(text.splitlines()):
                if not line.strip():
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError as exc:
                    raise ValueError(f"line {index}: invalid JSON: {exc}") from exc
            return entries
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON: {exc}") from exc
        if isinstance(document, dict) and isinstance(document.get("scenarios"), list):
            return document["scenarios"]
        if isinstance(document, list):
            return document
        raise ValueError("expected a list of scenarios or an object with 'scenarios'")
