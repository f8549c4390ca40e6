"""Tests for transcript normalisation."""

from convo_eval.conversation.domain.message import (
    assistant,
    build_transcript,
    count_user_turns,
    user,
)


class TestBuildTranscript:
    def test_drops_empty_messages(self) -> None:
        transcript = build_transcript([user(" "), user("a"), assistant("", None)])
        assert [m.content for m in transcript] == ["a"]

    def test_collapses_consecutive_duplicates(self) -> None:
        transcript = build_transcript(
            [user("Salut"), user("salut "), assistant("Hey", "companion"), assistant("Hey", None)]
        )
        assert [m.role for m in transcript] == ["user", "assistant"]

    def test_keeps_distinct_consecutive_messages(self) -> None:
        transcript = build_transcript([user("a"), user("b")])
        assert len(transcript) == 2

    def test_counts_user_turns(self) -> None:
        assert count_user_turns([user("a"), assistant("b", None), user("c")]) == 2
