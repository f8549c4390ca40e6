"""Shallow partial-object matching with explicit expected-value shapes.

The shape of each expected field is chosen by inspecting the ACTUAL value:
an expected list against an actual list is a case-insensitive subset check,
an expected list against a scalar is case-insensitive set membership.
"""

from dataclasses import dataclass
from typing import Any

from convo_eval.assertion.domain.json_path import MISSING, JSONValue, Resolved


@dataclass(frozen=True)
class Scalar:
    expected: JSONValue


@dataclass(frozen=True)
class OneOfSet:
    options: list[JSONValue]


@dataclass(frozen=True)
class SubsetArray:
    required: list[JSONValue]


type ExpectedShape = Scalar | OneOfSet | SubsetArray


def classify(expected: JSONValue, actual: Resolved) -> ExpectedShape:
    if isinstance(expected, list):
        if isinstance(actual, list):
            return SubsetArray(required=expected)
        return OneOfSet(options=expected)
    return Scalar(expected=expected)


def field_matches(expected: JSONValue, actual: Resolved) -> bool:
    match classify(expected, actual):
        case SubsetArray(required=required) if isinstance(actual, list):
            return all(any(_loose_equal(r, a) for a in actual) for r in required)
        case OneOfSet(options=options):
            return actual is not MISSING and any(_loose_equal(o, actual) for o in options)
        case Scalar(expected=value):
            return _scalar_equal(value, actual)
    return False


def shallow_match(item: Any, pattern: Any) -> bool:
    """True when every field of pattern matches the same field of item."""
    if not isinstance(pattern, dict) or not isinstance(item, dict):
        return False
    return all(
        field_matches(expected, item.get(key, MISSING))
        for key, expected in pattern.items()
    )


def _scalar_equal(expected: JSONValue, actual: Resolved) -> bool:
    if isinstance(expected, str):
        return _text(actual) == expected.strip().lower()
    if isinstance(expected, (int, float)) and not isinstance(expected, bool):
        number = _number(actual)
        return number is not None and number == expected
    return strict_equal(expected, actual)


def _loose_equal(expected: JSONValue, actual: Resolved) -> bool:
    if isinstance(expected, str) and isinstance(actual, str):
        return expected.strip().lower() == actual.strip().lower()
    return strict_equal(expected, actual)


def _text(value: Resolved) -> str:
    if value is MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip().lower()


def _number(value: Resolved) -> float | None:
    if value is MISSING or value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip()) if value.strip() else 0.0
        except ValueError:
            return None
    return None


def strict_equal(expected: Resolved, actual: Resolved) -> bool:
    """Type-sensitive equality: bools never equal numbers, MISSING equals nothing."""
    if expected is MISSING or actual is MISSING:
        return False
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool) and expected == actual
    if isinstance(expected, (int, float)) and isinstance(actual, (int, float)):
        return expected == actual
    if isinstance(expected, list) and isinstance(actual, list):
        return len(expected) == len(actual) and all(
            strict_equal(e, a) for e, a in zip(expected, actual)
        )
    if isinstance(expected, dict) and isinstance(actual, dict):
        return expected.keys() == actual.keys() and all(
            strict_equal(v, actual[k]) for k, v in expected.items()
        )
    return type(expected) is type(actual) and expected == actual
