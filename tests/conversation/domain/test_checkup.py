"""Tests for checkup completion detection."""

from convo_eval.conversation.domain.checkup import (
    is_checkup_complete,
    is_checkup_running,
    is_post_checkup_done,
)


def _state(**investigation: object) -> dict[str, object]:
    return {"investigation_state": investigation}


class TestCheckupComplete:
    def test_missing_or_cleared_state_is_complete(self) -> None:
        assert is_checkup_complete(None)
        assert is_checkup_complete({"investigation_state": None})
        assert is_checkup_complete({"investigation_state": {}})

    def test_cursor_past_pending_items_is_complete(self) -> None:
        assert is_checkup_complete(_state(pending_items=[1, 2], current_item_index=2))
        assert not is_checkup_complete(_state(pending_items=[1, 2], current_item_index=1))

    def test_terminal_status_is_complete(self) -> None:
        assert is_checkup_complete(_state(status="Completed", pending_items=[1]))

    def test_unknown_shape_is_not_complete(self) -> None:
        assert not is_checkup_complete(_state(status="checking"))

    def test_bad_index_counts_as_zero(self) -> None:
        assert not is_checkup_complete(_state(pending_items=[1], current_item_index="x"))


class TestPostCheckup:
    def test_post_checkup_done(self) -> None:
        assert is_post_checkup_done(_state(status="post_checkup_done"))
        assert not is_post_checkup_done(_state(status="post_checkup"))

    def test_running(self) -> None:
        assert is_checkup_running(_state(status="checking"))
        assert not is_checkup_running(_state(status="post_checkup"))
        assert not is_checkup_running(None)
