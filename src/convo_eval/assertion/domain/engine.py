"""Mechanical assertion engine: (assertions, snapshots) -> issues.

Pure: no network or store access. Each assertion kind is evaluated on its own
and contributes zero or more issues; absent kinds contribute nothing. A bad
regex in a scenario becomes a ``mechanical_assertion_invalid_regex`` issue.
"""

import re
from datetime import UTC, datetime
from typing import Any

from convo_eval.assertion.domain.invariants import check_invariant
from convo_eval.assertion.domain.issue import Issue, IssueKind, high
from convo_eval.assertion.domain.json_path import MISSING, render, resolve_path
from convo_eval.assertion.domain.matcher import shallow_match, strict_equal
from convo_eval.assertion.domain.mechanical import (
    ArraySomeMatch,
    MechanicalAssertionSet,
    OccurrenceCap,
)
from convo_eval.assertion.domain.snapshots import StateSnapshots


def evaluate(
    assertions: MechanicalAssertionSet | None,
    snapshots: StateSnapshots,
    now: datetime | None = None,
) -> list[Issue]:
    if assertions is None:
        return []
    moment = now if now is not None else datetime.now(UTC)
    a = assertions
    issues: list[Issue] = []

    if a.profile_equals is not None:
        issues += _field_equals("profiles", a.profile_equals, snapshots.profile)
    if a.chat_state_equals is not None:
        issues += _field_equals("user_chat_states", a.chat_state_equals, snapshots.chat_state)
    if a.chat_state_temp_memory_equals is not None:
        issues += _path_equals(a.chat_state_temp_memory_equals, snapshots.temp_memory)
    if a.chat_state_temp_memory_paths_exist is not None:
        issues += _paths_exist(a.chat_state_temp_memory_paths_exist, snapshots.temp_memory)
    if a.chat_state_temp_memory_array_some_match is not None:
        issues += _array_some_match(
            a.chat_state_temp_memory_array_some_match, snapshots.temp_memory
        )

    issues += _collection(
        "plan_actions",
        snapshots.plan_actions,
        a.plan_actions_count_min,
        a.plan_actions_must_include,
        a.plan_actions_must_not_include,
    )
    issues += _collection(
        "plan_frameworks",
        snapshots.plan_frameworks,
        a.plan_frameworks_count_min,
        a.plan_frameworks_must_include,
        a.plan_frameworks_must_not_include,
    )

    assistant_text = snapshots.assistant_text()
    if a.assistant_must_match is not None:
        issues += _regex_presence(
            "assistant_must_match", a.assistant_must_match, assistant_text, True
        )
    if a.assistant_must_not_match is not None:
        issues += _regex_presence(
            "assistant_must_not_match", a.assistant_must_not_match, assistant_text, False
        )
    if a.assistant_max_occurrences is not None:
        issues += _occurrence_caps(a.assistant_max_occurrences, assistant_text)

    if a.logged_issues_include is not None:
        issues += _logged_include(a.logged_issues_include, snapshots.logged_issues)
    if a.logged_issues_include_any is not None:
        issues += _logged_include_any(a.logged_issues_include_any, snapshots.logged_issues)

    for invariant in a.scheduler_invariants or []:
        violation = check_invariant(invariant, snapshots, moment)
        if violation is not None:
            issues.append(violation)

    return issues


def _failed(message: str) -> Issue:
    return high(IssueKind.MECHANICAL_ASSERTION_FAILED, message)


def _field_equals(
    label: str, expected: dict[str, Any], snapshot: dict[str, Any] | None
) -> list[Issue]:
    issues: list[Issue] = []
    for key, value in expected.items():
        actual = snapshot.get(key, MISSING) if snapshot is not None else MISSING
        if not strict_equal(value, actual):
            issues.append(
                _failed(f"{label}.{key} expected={render(value)} actual={render(actual)}")
            )
    return issues


def _path_equals(expected: dict[str, Any], temp_memory: Any) -> list[Issue]:
    issues: list[Issue] = []
    for path, value in expected.items():
        actual = resolve_path(temp_memory, path)
        if not strict_equal(value, actual):
            issues.append(
                _failed(f"temp_memory.{path} expected={render(value)} actual={render(actual)}")
            )
    return issues


def _paths_exist(paths: list[str], temp_memory: Any) -> list[Issue]:
    issues: list[Issue] = []
    for raw in paths:
        path = raw.strip()
        if path and resolve_path(temp_memory, path) is MISSING:
            issues.append(_failed(f"temp_memory path missing: {path}"))
    return issues


def _array_some_match(checks: list[ArraySomeMatch], temp_memory: Any) -> list[Issue]:
    issues: list[Issue] = []
    for check in checks:
        actual = resolve_path(temp_memory, check.path)
        if not isinstance(actual, list):
            issues.append(
                _failed(f"temp_memory.{check.path} expected array actual={render(actual)}")
            )
        elif not any(shallow_match(item, check.match) for item in actual):
            issues.append(
                _failed(f"temp_memory.{check.path} array_some_match failed: {render(check.match)}")
            )
    return issues


def _collection(
    label: str,
    items: list[Any],
    count_min: int | None,
    must_include: list[dict[str, Any]] | None,
    must_not_include: list[dict[str, Any]] | None,
) -> list[Issue]:
    issues: list[Issue] = []
    if count_min is not None and len(items) < count_min:
        issues.append(
            _failed(f"{label}_count_min failed: expected>={count_min} actual={len(items)}")
        )
    for expected in must_include or []:
        if not any(shallow_match(item, expected) for item in items):
            issues.append(_failed(f"{label}_must_include failed: {render(expected)}"))
    for forbidden in must_not_include or []:
        bad = next((item for item in items if shallow_match(item, forbidden)), None)
        if bad is not None:
            echoed = {
                "title": bad.get("title"),
                "status": bad.get("status"),
                "tracking_type": bad.get("tracking_type"),
                "target_reps": bad.get("target_reps"),
            }
            issues.append(
                _failed(
                    f"{label}_must_not_include failed:"
                    f" forbidden={render(forbidden)} matched={render(echoed)}"
                )
            )
    return issues


def _compile(label: str, pattern: str) -> re.Pattern[str] | Issue:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        return high(
            IssueKind.MECHANICAL_ASSERTION_INVALID_REGEX,
            f"{label} invalid regex: /{pattern}/i ({exc})",
        )


def _regex_presence(
    label: str, patterns: list[str], text: str, must_match: bool
) -> list[Issue]:
    issues: list[Issue] = []
    for pattern in patterns:
        compiled = _compile(label, pattern)
        if isinstance(compiled, Issue):
            issues.append(compiled)
        elif (compiled.search(text) is not None) != must_match:
            issues.append(_failed(f"{label} failed: /{pattern}/i"))
    return issues


def _occurrence_caps(caps: list[OccurrenceCap], text: str) -> list[Issue]:
    issues: list[Issue] = []
    for cap in caps:
        compiled = _compile("assistant_max_occurrences", cap.pattern)
        if isinstance(compiled, Issue):
            issues.append(compiled)
            continue
        count = sum(1 for _ in compiled.finditer(text))
        if count > cap.max:
            issues.append(
                _failed(
                    f"assistant_max_occurrences failed: /{cap.pattern}/gi"
                    f" count={count} max={cap.max}"
                )
            )
    return issues


def _logged_include(expected: list[str], logged: list[str]) -> list[Issue]:
    present = set(logged)
    return [
        _failed(f"logged_issues_include failed: {render(value)}")
        for value in expected
        if value not in present
    ]


def _logged_include_any(options: list[str], logged: list[str]) -> list[Issue]:
    if not options or set(options) & set(logged):
        return []
    return [_failed(f"logged_issues_include_any failed: none of {render(options)}")]
