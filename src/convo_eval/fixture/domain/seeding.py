"""Seeding options, results and the row shapes written to the backing store.

Every builder here is pure: it returns plain dicts and leaves persistence to
the FixtureStore port.
"""

from datetime import datetime, time, timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field

from convo_eval.core.ids import new_id
from convo_eval.core.sampling import clamp_int
from convo_eval.scenario.domain.scenario import PreseedAction, PreseedActionEntry, Scenario

type TrackingType = Literal["boolean", "counter"]

MAX_ACTIVE_ITEMS = 20
GENERATED_HABIT_MAX_TARGET = 14
PRESEED_HABIT_MAX_TARGET = 7
MAX_ENTRY_DAYS = 30
FILLER_DESCRIPTION = "Action créée pour compléter un bilan de test."
FORCED_VITAL_LABEL = "Sommeil"
FORCED_VITAL_UNIT = "h"
DEFAULT_VITAL_LABEL = "Signe Vital"


class SeedOptions(BaseModel, frozen=True):
    seed_plan: bool = True
    active_count: int = Field(default=0, ge=0, le=MAX_ACTIVE_ITEMS)
    include_vitals_in_bilan: bool = False
    preseed_actions: list[PreseedAction] = Field(default_factory=list)
    preseed_action_entries: list[PreseedActionEntry] = Field(default_factory=list)

    @classmethod
    def for_scenario(cls, scenario: Scenario, bilan_actions_count: int) -> "SeedOptions":
        requested = scenario.active_actions_count
        return cls(
            seed_plan=scenario.setup.seed_plan,
            active_count=clamp_int(
                requested if requested is not None else bilan_actions_count,
                0,
                MAX_ACTIVE_ITEMS,
                0,
            ),
            include_vitals_in_bilan=scenario.include_vitals_in_bilan,
            preseed_actions=scenario.setup.preseed_actions,
            preseed_action_entries=scenario.setup.preseed_action_entries,
        )


class PlanRef(BaseModel, frozen=True):
    user_id: str
    plan_id: str
    submission_id: str


class SeedResult(BaseModel, frozen=True):
    plan_ref: PlanRef | None = None
    inserted_actions: list[dict[str, Any]] = Field(default_factory=list)
    pending_items: list[dict[str, Any]] = Field(default_factory=list)
    skipped_entries: list[str] = Field(default_factory=list)


def tracking_type(value: Any, default: TrackingType = "boolean") -> TrackingType:
    text = str(value or default).strip().lower()
    if text in ("boolean", "counter"):
        return text  # type: ignore[return-value]
    return default


def _ref_fields(ref: PlanRef) -> dict[str, str]:
    return {"user_id": ref.user_id, "plan_id": ref.plan_id, "submission_id": ref.submission_id}


def goal_row(user_id: str, submission_id: str) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "submission_id": submission_id,
        "status": "active",
        "axis_id": "axis_test",
        "axis_title": "Test Axis",
        "theme_id": "theme_test",
        "priority_order": 1,
    }


def plan_row(
    user_id: str,
    goal_id: str,
    submission_id: str,
    content: dict[str, Any],
    fake_inputs: Any,
) -> dict[str, Any]:
    why = None
    if isinstance(fake_inputs, dict):
        why = (fake_inputs.get("inputs") or {}).get("why")
    return {
        "user_id": user_id,
        "goal_id": goal_id,
        "submission_id": submission_id,
        "status": "active",
        "current_phase": 1,
        "title": str(content.get("grimoireTitle") or "Eval plan"),
        "deep_why": str(content.get("deepWhy") or why or "Plan généré pour tests (eval run)."),
        "context_problem": str(content.get("context_problem") or ""),
        "content": content,
    }


def generated_action_row(
    item: dict[str, Any], ref: PlanRef, last_performed_at: str
) -> dict[str, Any]:
    kind = "habit" if str(item.get("type") or "").lower() == "habitude" else "mission"
    target = (
        clamp_int(item.get("targetReps", 1), 1, GENERATED_HABIT_MAX_TARGET, 1)
        if kind == "habit"
        else 1
    )
    return {
        "id": str(item.get("id") or new_id()),
        **_ref_fields(ref),
        "type": kind,
        "title": str(item.get("title") or "Action"),
        "description": str(item.get("description") or ""),
        "target_reps": target,
        "current_reps": 0,
        "status": "active",
        "tracking_type": tracking_type(item.get("tracking_type")),
        "time_of_day": str(item.get("time_of_day") or "any_time"),
        "last_performed_at": last_performed_at,
    }


def framework_row(item: dict[str, Any], ref: PlanRef, last_performed_at: str) -> dict[str, Any]:
    details = item.get("frameworkDetails")
    framework_type = details.get("type") if isinstance(details, dict) else None
    return {
        "id": new_id(),
        **_ref_fields(ref),
        "action_id": str(item.get("id") or f"fw_{new_id()}"),
        "title": str(item.get("title") or "Framework"),
        "type": str(framework_type or "recurring"),
        "target_reps": clamp_int(item.get("targetReps", 1), 1, GENERATED_HABIT_MAX_TARGET, 1),
        "current_reps": 0,
        "status": "active",
        "tracking_type": tracking_type(item.get("tracking_type")),
        "last_performed_at": last_performed_at,
    }


def filler_action_row(number: int, ref: PlanRef, last_performed_at: str) -> dict[str, Any]:
    return {
        "id": new_id(),
        **_ref_fields(ref),
        "type": "mission",
        "title": f"Action (bilan) #{number}",
        "description": FILLER_DESCRIPTION,
        "target_reps": 1,
        "current_reps": 0,
        "status": "active",
        "tracking_type": "boolean",
        "time_of_day": "any_time",
        "last_performed_at": last_performed_at,
    }


def _preseed_kind(action: PreseedAction) -> Literal["habit", "mission"]:
    return "habit" if action.type.strip().lower() in ("habit", "habitude") else "mission"


def _preseed_target(action: PreseedAction) -> int:
    if _preseed_kind(action) != "habit":
        return 1
    return clamp_int(action.target_reps or 1, 1, PRESEED_HABIT_MAX_TARGET, 1)


def preseed_action_row(
    action: PreseedAction, ref: PlanRef, last_performed_at: str
) -> dict[str, Any]:
    return {
        "id": new_id(),
        **_ref_fields(ref),
        "type": _preseed_kind(action),
        "title": action.title,
        "description": action.description,
        "target_reps": _preseed_target(action),
        "current_reps": 0,
        "status": "active",
        "tracking_type": tracking_type(action.tracking_type),
        "time_of_day": action.time_of_day or "any_time",
        "last_performed_at": last_performed_at,
    }


def preseed_plan_item(action: PreseedAction) -> dict[str, Any]:
    """Plan-content entry for a preseed item that must only exist in the plan."""
    return {
        "id": new_id(),
        "type": "habitude" if _preseed_kind(action) == "habit" else "mission",
        "title": action.title,
        "description": action.description,
        "tracking_type": tracking_type(action.tracking_type),
        "targetReps": _preseed_target(action),
        "time_of_day": action.time_of_day or "any_time",
        "status": "pending",
        "isCompleted": False,
    }


def action_pending_item(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "type": "action",
        "title": row["title"],
        "description": row["description"],
        "tracking_type": row["tracking_type"],
        "target": row["target_reps"],
    }


def framework_pending_item(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "type": "framework",
        "title": row["title"],
        "tracking_type": row["tracking_type"],
    }


def vital_pending_item(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "type": "vital",
        "title": row["label"],
        "tracking_type": row["tracking_type"],
        "unit": row["unit"],
    }


def forced_vital_row(ref: PlanRef, last_checked_at: str) -> dict[str, Any]:
    return {
        "id": new_id(),
        **_ref_fields(ref),
        "label": FORCED_VITAL_LABEL,
        "unit": FORCED_VITAL_UNIT,
        "current_value": "",
        "target_value": "",
        "status": "active",
        "tracking_type": "counter",
        "last_checked_at": last_checked_at,
    }


def plan_vital_row(
    vital: dict[str, Any], ref: PlanRef, last_checked_at: str
) -> dict[str, Any]:
    return {
        "id": new_id(),
        **_ref_fields(ref),
        "label": str(vital.get("name") or vital.get("title") or DEFAULT_VITAL_LABEL),
        "unit": str(vital.get("unit") or ""),
        "current_value": str(vital.get("startValue") or ""),
        "target_value": str(vital.get("targetValue") or ""),
        "status": "active",
        "tracking_type": tracking_type(vital.get("tracking_type"), default="counter"),
        "last_checked_at": last_checked_at,
    }


def entry_rows(
    entry: PreseedActionEntry, action: dict[str, Any], user_id: str, now: datetime
) -> list[dict[str, Any]]:
    """One history row per day, at noon UTC, for the ``days`` days ending yesterday."""
    days = max(0, min(MAX_ENTRY_DAYS, entry.days))
    rows: list[dict[str, Any]] = []
    for offset in range(days, 0, -1):
        day = (now - timedelta(days=offset)).date()
        performed_at = datetime.combine(day, time(12, 0), tzinfo=now.tzinfo)
        rows.append(
            {
                "user_id": user_id,
                "action_id": str(action["id"]),
                "action_title": str(action["title"]),
                "status": entry.status,
                "value": None,
                "note": entry.note,
                "performed_at": performed_at.isoformat(),
            }
        )
    return rows


def checkup_chat_state(user_id: str, pending_items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "scope": "web",
        "current_mode": "investigator",
        "risk_level": 0,
        "investigation_state": {
            "status": "checking",
            "pending_items": pending_items,
            "current_item_index": 0,
            "temp_memory": {"opening_done": False},
        },
    }
