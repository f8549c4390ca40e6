"""Named structural rules over the agent's state-machine snapshot."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from convo_eval.assertion.domain.issue import Issue, IssueKind, high
from convo_eval.assertion.domain.json_path import render
from convo_eval.assertion.domain.mechanical import SchedulerInvariant
from convo_eval.assertion.domain.snapshots import StateSnapshots
from convo_eval.core.text import looks_like_explicit_stop

MAX_QUEUE_LENGTH = 6
SUPERVISOR_MAX_AGE = timedelta(hours=1)
GUIDED_FLOW_MODE = "investigator"
SAFETY_MODES = frozenset({"sentry", "firefighter"})
FILLER_TOPICS = frozenset(
    {
        "ok",
        "oui",
        "non",
        "bon",
        "bref",
        "alors",
        "du coup",
        "en fait",
        "truc",
        "rien",
        "sujet",
        "ça",
        "ca",
        "autre",
        "topic",
    }
)

type InvariantCheck = Callable[[StateSnapshots, datetime], str | None]


def check_invariant(
    invariant: SchedulerInvariant, snapshots: StateSnapshots, now: datetime
) -> Issue | None:
    """Return one issue named after the invariant when it is violated."""
    detail = _CHECKS[invariant](snapshots, now)
    if detail is None:
        return None
    return high(IssueKind.SCHEDULER_INVARIANT_VIOLATED, f"{invariant.value}: {detail}")


def _supervisor(snapshots: StateSnapshots) -> dict[str, Any] | None:
    tm = snapshots.temp_memory
    if not isinstance(tm, dict):
        return None
    runtime = tm.get("supervisor")
    return runtime if isinstance(runtime, dict) else None


def _stack(snapshots: StateSnapshots) -> list[Any]:
    runtime = _supervisor(snapshots)
    stack = runtime.get("stack") if runtime else None
    return stack if isinstance(stack, list) else []


def _tool_flow_cleared_on_stop(snapshots: StateSnapshots, now: datetime) -> str | None:
    if not any(looks_like_explicit_stop(turn) for turn in snapshots.user_turns()):
        return None
    tm = snapshots.temp_memory
    flow = tm.get("architect_tool_flow") if isinstance(tm, dict) else None
    if flow in (None, {}, ""):
        return None
    return "user asked to stop but temp_memory.architect_tool_flow is still set"


def _guided_flow_mode_consistent(snapshots: StateSnapshots, now: datetime) -> str | None:
    state = snapshots.chat_state or {}
    inv = state.get("investigation_state")
    if not isinstance(inv, dict) or str(inv.get("status") or "") != "checking":
        return None
    mode = state.get("current_mode")
    if mode == GUIDED_FLOW_MODE or mode in SAFETY_MODES:
        return None
    return f"investigation_state.status=checking but current_mode={render(mode)}"


def _session_stack_resumable(snapshots: StateSnapshots, now: datetime) -> str | None:
    offenders: list[str] = []
    for index, session in enumerate(_stack(snapshots)):
        entry = session if isinstance(session, dict) else {}
        missing = [
            field
            for field in ("resume_brief", "last_active_at")
            if not str(entry.get(field) or "").strip()
        ]
        if missing:
            offenders.append(f"stack[{index}] missing {','.join(missing)}")
    return "; ".join(offenders) if offenders else None


def _supervisor_fresh(snapshots: StateSnapshots, now: datetime) -> str | None:
    runtime = _supervisor(snapshots)
    if runtime is None:
        return None
    raw = str(runtime.get("updated_at") or "").strip()
    try:
        updated_at = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return f"updated_at={render(raw)} is not a timestamp"
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=now.tzinfo)
    age = now - updated_at
    if age <= SUPERVISOR_MAX_AGE:
        return None
    return (
        f"updated_at={raw} age_seconds={int(age.total_seconds())}"
        f" max_age_seconds={int(SUPERVISOR_MAX_AGE.total_seconds())}"
    )


def _queue_bounded(snapshots: StateSnapshots, now: datetime) -> str | None:
    runtime = _supervisor(snapshots)
    queue = runtime.get("queue") if runtime else None
    if not isinstance(queue, list) or len(queue) <= MAX_QUEUE_LENGTH:
        return None
    return f"actual={len(queue)} max={MAX_QUEUE_LENGTH}"


def _topic_label_not_filler(snapshots: StateSnapshots, now: datetime) -> str | None:
    fillers: list[str] = []
    for session in _stack(snapshots):
        if not isinstance(session, dict) or session.get("type") != "topic_exploration":
            continue
        meta = session.get("meta") if isinstance(session.get("meta"), dict) else {}
        label = str(session.get("topic") or meta.get("topic") or "").strip().lower()
        if label in FILLER_TOPICS:
            fillers.append(label)
    return f"filler topic labels {render(fillers)}" if fillers else None


_CHECKS: dict[SchedulerInvariant, InvariantCheck] = {
    SchedulerInvariant.TOOL_FLOW_CLEARED_ON_STOP: _tool_flow_cleared_on_stop,
    SchedulerInvariant.GUIDED_FLOW_MODE_CONSISTENT: _guided_flow_mode_consistent,
    SchedulerInvariant.SESSION_STACK_RESUMABLE: _session_stack_resumable,
    SchedulerInvariant.SUPERVISOR_FRESH: _supervisor_fresh,
    SchedulerInvariant.QUEUE_BOUNDED: _queue_bounded,
    SchedulerInvariant.TOPIC_LABEL_NOT_FILLER: _topic_label_not_filler,
}
