"""Judge Protocol: structural interface for all judge implementations."""

from typing import Protocol

from convo_eval.judge.domain.verdict import JudgeRequest, JudgeVerdict


class Judge(Protocol):
    """Grades one finished conversation. Invoked once per scenario."""

    async def judge(self, request: JudgeRequest) -> JudgeVerdict: ...
