"""Environment substitution for raw config documents.

Service keys stay out of YAML files: ``${EVAL_SERVICE_ROLE_KEY}`` is replaced by
the variable's value, and ``${EVAL_BASE_URL:-https://project.example.co}`` falls
back to the text after ``:-`` when the variable is unset.
"""

import os
import re
from collections.abc import Callable

_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")

type RawValue = str | int | float | bool | None | list["RawValue"] | dict[str, "RawValue"]


def collect_missing_vars(data: RawValue) -> list[str]:
    """Return every unset variable referenced without a default, in first-seen order."""
    missing: list[str] = []

    def record(text: str) -> str:
        for ref in _REFERENCE.finditer(text):
            name = ref.group("name")
            if ref.group("default") is None and name not in os.environ and name not in missing:
                missing.append(name)
        return text

    _map_strings(data, record)
    return missing


def interpolate(data: RawValue) -> RawValue:
    """Substitute every reference in the document.

    Call `collect_missing_vars` first; an unset variable without a default
    raises KeyError here.
    """
    return _map_strings(data, lambda text: _REFERENCE.sub(_resolve, text))


def _resolve(ref: re.Match[str]) -> str:
    name, default = ref.group("name"), ref.group("default")
    if default is not None:
        return os.environ.get(name, default)
    return os.environ[name]


def _map_strings(data: RawValue, transform: Callable[[str], str]) -> RawValue:
    if isinstance(data, str):
        return transform(data)
    if isinstance(data, list):
        return [_map_strings(item, transform) for item in data]
    if isinstance(data, dict):
        return {key: _map_strings(value, transform) for key, value in data.items()}
    return data
