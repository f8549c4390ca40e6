"""JsonPlanBankLoader: reads pre-generated plan templates from JSON files."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from convo_eval.fixture.domain.observer import FixtureObserver
from convo_eval.fixture.domain.template import PlanBankEntry
from convo_eval.fixture.infrastructure.errors import PlanBankLoadError


class JsonPlanBankLoader:
    """Loads every ``*.json`` under a directory (recursively), or a single JSON file.

    A file may hold one entry or a list of entries.
    """

    def __init__(self, observer: FixtureObserver) -> None:
        self._observer = observer

    def load(self, path: Path) -> list[PlanBankEntry]:
        if path.is_dir():
            files = sorted(path.rglob("*.json"))
        elif path.is_file():
            files = [path]
        else:
            raise PlanBankLoadError(path=str(path), reason="no such file or directory")

        entries: list[PlanBankEntry] = []
        for file in files:
            for raw in self._read(file):
                try:
                    entries.append(PlanBankEntry.model_validate(raw))
                except ValidationError as exc:
                    raise PlanBankLoadError(path=str(file), reason=str(exc)) from exc

        self._observer.fixture_plan_bank_loaded(path=str(path), total_entries=len(entries))
        return entries

    def _read(self, file: Path) -> list[Any]:
        try:
            document = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PlanBankLoadError(path=str(file), reason=str(exc)) from exc
        return document if isinstance(document, list) else [document]
