"""Tests for HttpJudge."""

import httpx
import pytest

from convo_eval.conversation.domain.message import assistant, user
from convo_eval.core.backoff import BackoffPolicy
from convo_eval.judge.domain.verdict import JudgeRequest
from convo_eval.judge.infrastructure.errors import JudgeInvocationError
from convo_eval.judge.infrastructure.http_judge import HttpJudge
from tests.core.mock_service import Sequence, json_body, make_client
from tests.judge.fake_observer import FakeJudgeObserver

PATH = "/functions/v1/eval-judge"


async def _no_sleep(_: float) -> None:
    return None


def _judge(handler: Sequence) -> tuple[HttpJudge, FakeJudgeObserver]:
    observer = FakeJudgeObserver()
    judge = HttpJudge(
        client=make_client(handler),
        path=PATH,
        retry=BackoffPolicy(base_ms=1, jitter_ms=0, max_attempts=3),
        observer=observer,
        sleep=_no_sleep,
    )
    return judge, observer


def _request() -> JudgeRequest:
    return JudgeRequest(
        dataset_key="core",
        scenario_key="greeting",
        eval_run_id="run-1",
        request_id="batch:core:greeting",
        transcript=[user("Bonjour"), assistant("Salut !", "companion")],
        config={"model": "gemini-2.5-flash"},
    )


class TestRequest:
    async def test_posts_request_without_request_id_field(self) -> None:
        handler = Sequence([httpx.Response(200, json={"issues": [], "suggestions": []})])
        judge, _ = _judge(handler)

        await judge.judge(_request())

        sent = handler.requests[0]
        body = json_body(sent)
        assert sent.url.path == PATH
        assert sent.headers["x-request-id"] == "batch:core:greeting"
        assert "request_id" not in body
        assert body["eval_run_id"] == "run-1"
        assert body["force_real_ai"] is True
        assert [m["role"] for m in body["transcript"]] == ["user", "assistant"]


class TestParse:
    async def test_issues_are_normalised(self) -> None:
        handler = Sequence(
            [
                httpx.Response(
                    200,
                    json={
                        "issues": [
                            {"code": "tone", "severity": "low", "message": "Trop sec", "turn": 3},
                            {"kind": "greeting", "severity": "critical"},
                            {"message": "no code"},
                            "not an object",
                        ]
                    },
                )
            ]
        )
        judge, _ = _judge(handler)

        verdict = await judge.judge(_request())

        assert [i.kind for i in verdict.issues] == ["tone", "greeting", "judge_issue"]
        assert [i.severity for i in verdict.issues] == ["low", "medium", "medium"]
        assert verdict.issues[0].model_extra == {"turn": 3}
        assert verdict.issues[1].message == ""

    async def test_incomplete_suggestions_are_dropped(self) -> None:
        handler = Sequence(
            [
                httpx.Response(
                    200,
                    json={
                        "suggestions": [
                            {"prompt_key": "sophia.investigator", "proposed_addendum": "Relance."},
                            {"prompt_key": "sophia.companion", "proposed_addendum": "  "},
                            {"proposed_addendum": "Sans clé."},
                        ]
                    },
                )
            ]
        )
        judge, _ = _judge(handler)

        verdict = await judge.judge(_request())

        assert len(verdict.suggestions) == 1
        assert verdict.suggestions[0].prompt_key == "sophia.investigator"
        assert verdict.suggestions[0].action == "append"

    async def test_metrics_and_run_id(self) -> None:
        handler = Sequence(
            [
                httpx.Response(
                    200,
                    json={
                        "eval_run_id": "run-9",
                        "metrics": {"cost_usd": 0.02, "prompt_tokens": 10, "total_tokens": None},
                    },
                )
            ]
        )
        judge, observer = _judge(handler)

        verdict = await judge.judge(_request())

        assert verdict.eval_run_id == "run-9"
        assert verdict.metrics.cost_usd == pytest.approx(0.02)
        assert verdict.metrics.prompt_tokens == 10
        assert verdict.metrics.total_tokens == 0
        assert observer.completed[0].cost_usd == pytest.approx(0.02)

    async def test_non_object_body_raises(self) -> None:
        judge, observer = _judge(Sequence([httpx.Response(200, json=[1, 2])]))

        with pytest.raises(JudgeInvocationError, match="body is not an object"):
            await judge.judge(_request())

        assert len(observer.failed) == 1


class TestErrors:
    async def test_error_field_in_success_body_fails(self) -> None:
        handler = Sequence([httpx.Response(200, json={"error": "invalid transcript"})])
        judge, _ = _judge(handler)

        with pytest.raises(JudgeInvocationError, match="invalid transcript"):
            await judge.judge(_request())

        assert len(handler.requests) == 1

    async def test_rate_limit_is_retried(self) -> None:
        handler = Sequence(
            [
                httpx.Response(429, json={"error": "quota"}),
                httpx.Response(200, json={"issues": []}),
            ]
        )
        judge, observer = _judge(handler)

        verdict = await judge.judge(_request())

        assert verdict.issues == []
        assert len(handler.requests) == 2
        assert observer.retries[0].scenario_key == "greeting"

    async def test_server_error_without_body_fails_fast(self) -> None:
        handler = Sequence([httpx.Response(500)])
        judge, observer = _judge(handler)

        with pytest.raises(JudgeInvocationError, match=r"eval-judge failed \(500\)"):
            await judge.judge(_request())

        assert len(handler.requests) == 1
        assert observer.retries == []

    async def test_transport_error_is_retried_until_exhausted(self) -> None:
        calls: list[httpx.Request] = []

        def refuse(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused")

        observer = FakeJudgeObserver()
        judge = HttpJudge(
            client=make_client(refuse),
            path=PATH,
            retry=BackoffPolicy(base_ms=1, jitter_ms=0, max_attempts=3),
            observer=observer,
            sleep=_no_sleep,
        )

        with pytest.raises(JudgeInvocationError, match="connection refused"):
            await judge.judge(_request())

        assert len(calls) == 3
        assert len(observer.retries) == 2
