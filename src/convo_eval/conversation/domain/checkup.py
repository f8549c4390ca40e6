"""Completion detection for the guided checkup flow, read from a chat-state snapshot."""

from typing import Any

POST_CHECKUP = "post_checkup"
POST_CHECKUP_DONE = "post_checkup_done"
_TERMINAL_STATUSES = frozenset(
    {"done", "completed", "finished", "stopped", "cancelled", "canceled"}
)


def _investigation(chat_state: dict[str, Any] | None) -> dict[str, Any] | None:
    if not isinstance(chat_state, dict):
        return None
    state = chat_state.get("investigation_state")
    return state if isinstance(state, dict) and state else None


def _status(investigation: dict[str, Any]) -> str:
    return str(investigation.get("status") or "").strip().lower()


def is_checkup_complete(chat_state: dict[str, Any] | None) -> bool:
    """True once the pending-item cursor has exhausted the list.

    A cleared investigation state, a terminal status, or the post-checkup
    done marker also count as complete.
    """
    investigation = _investigation(chat_state)
    if investigation is None:
        return True
    status = _status(investigation)
    if status == POST_CHECKUP_DONE or status in _TERMINAL_STATUSES:
        return True
    pending = investigation.get("pending_items")
    if isinstance(pending, list):
        try:
            index = int(investigation.get("current_item_index") or 0)
        except (TypeError, ValueError):
            index = 0
        return len(pending) == 0 or index >= len(pending)
    return False


def is_post_checkup_done(chat_state: dict[str, Any] | None) -> bool:
    """Fully done, including topics parked during the checkup."""
    investigation = _investigation(chat_state)
    return investigation is None or _status(investigation) == POST_CHECKUP_DONE


def is_checkup_running(chat_state: dict[str, Any] | None) -> bool:
    investigation = _investigation(chat_state)
    return investigation is not None and _status(investigation) != POST_CHECKUP
