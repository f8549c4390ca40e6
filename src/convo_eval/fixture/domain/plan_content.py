"""In-place transforms over a plan's ``phases[].actions[]`` content tree."""

from collections.abc import Iterator
from typing import Any

from convo_eval.core.ids import new_id


def empty_plan_content() -> dict[str, Any]:
    return {
        "phases": [{"id": "phase_1", "title": "Phase 1", "status": "active", "actions": []}]
    }


def _phases(plan: dict[str, Any]) -> list[Any]:
    phases = plan.get("phases")
    return phases if isinstance(phases, list) else []


def iter_actions(plan: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for phase in _phases(plan):
        actions = phase.get("actions") if isinstance(phase, dict) else None
        if not isinstance(actions, list):
            continue
        for action in actions:
            if isinstance(action, dict):
                yield action


def reassign_action_ids(plan: dict[str, Any]) -> dict[str, Any]:
    """Give every action a fresh uuid so seeded rows never collide across scenarios."""
    for action in iter_actions(plan):
        action["id"] = new_id()
    return plan


def apply_activation(plan: dict[str, Any], active_count: int) -> dict[str, Any]:
    """First phase active and the rest locked; the first active_count actions active."""
    for index, phase in enumerate(_phases(plan)):
        if isinstance(phase, dict):
            phase["status"] = "active" if index == 0 else "locked"
    for cursor, action in enumerate(iter_actions(plan)):
        action["isCompleted"] = False
        action["status"] = "active" if cursor < active_count else "pending"
    return plan


def active_actions(plan: dict[str, Any]) -> list[dict[str, Any]]:
    return [a for a in iter_actions(plan) if str(a.get("status") or "").lower() == "active"]


def append_to_first_phase(plan: dict[str, Any], actions: list[dict[str, Any]]) -> dict[str, Any]:
    if not actions:
        return plan
    phases = _phases(plan)
    if not phases or not isinstance(phases[0], dict):
        plan["phases"] = empty_plan_content()["phases"] + phases
        phases = plan["phases"]
    first = phases[0]
    if not isinstance(first.get("actions"), list):
        first["actions"] = []
    first["actions"].extend(actions)
    return plan
