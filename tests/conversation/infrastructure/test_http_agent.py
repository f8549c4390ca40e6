"""Tests for HttpAgent."""

import httpx
import pytest

from convo_eval.conversation.domain.agent import AgentCallMeta
from convo_eval.conversation.domain.message import assistant, user
from convo_eval.conversation.infrastructure.errors import AgentInvocationError
from convo_eval.conversation.infrastructure.http_agent import HttpAgent
from convo_eval.core.backoff import BackoffPolicy
from tests.conversation.fake_observer import FakeConversationObserver
from tests.core.mock_service import Sequence, json_body, make_client

PATH = "/functions/v1/process-message"
META = AgentCallMeta(request_id="b:ds:s1", eval_run_id="run-1", model="gemini-2.5-flash")


async def _no_sleep(_: float) -> None:
    return None


def _agent(handler: Sequence) -> tuple[HttpAgent, FakeConversationObserver]:
    observer = FakeConversationObserver()
    agent = HttpAgent(
        client=make_client(handler),
        path=PATH,
        retry=BackoffPolicy(base_ms=1, jitter_ms=0, max_attempts=3),
        observer=observer,
        sleep=_no_sleep,
    )
    return agent, observer


class TestProcess:
    async def test_posts_message_history_and_meta(self) -> None:
        handler = Sequence([httpx.Response(200, json={"content": "Salut !", "mode": "companion"})])
        agent, _ = _agent(handler)

        reply = await agent.process(
            "user-1", "Bonjour", [user("a"), assistant("b", "companion")], META
        )

        body = json_body(handler.requests[0])
        assert body["user_id"] == "user-1"
        assert body["message"] == "Bonjour"
        assert [m["role"] for m in body["history"]] == ["user", "assistant"]
        assert body["meta"]["eval_run_id"] == "run-1"
        assert "context_override" not in body["meta"]
        assert handler.requests[0].headers["x-request-id"] == "b:ds:s1"
        assert reply.content == "Salut !"
        assert reply.mode == "companion"
        assert reply.usable

    async def test_aborted_reply_is_returned_not_raised(self) -> None:
        handler = Sequence([httpx.Response(200, json={"content": "", "aborted": True})])
        agent, _ = _agent(handler)

        reply = await agent.process("user-1", "a", [], META)

        assert reply.aborted
        assert not reply.usable

    async def test_rate_limit_is_retried(self) -> None:
        handler = Sequence(
            [
                httpx.Response(429, json={"error": "Too many requests"}),
                httpx.Response(200, json={"content": "ok"}),
            ]
        )
        agent, observer = _agent(handler)

        reply = await agent.process("user-1", "a", [], META)

        assert reply.content == "ok"
        assert observer.retries[0].service == "agent"

    async def test_server_error_fails_fast(self) -> None:
        handler = Sequence([httpx.Response(500, json={"error": "boom"})])
        agent, _ = _agent(handler)

        with pytest.raises(AgentInvocationError, match="boom"):
            await agent.process("user-1", "a", [], META)

        assert len(handler.requests) == 1

    async def test_malformed_body(self) -> None:
        handler = Sequence([httpx.Response(200, json={"content": ["not", "text"]})])
        agent, _ = _agent(handler)

        with pytest.raises(AgentInvocationError, match="unexpected reply"):
            await agent.process("user-1", "a", [], META)
