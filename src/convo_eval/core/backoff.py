"""Capped exponential backoff with jitter, shared by every upstream retry loop."""

import asyncio
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from convo_eval.core.errors import ConvoEvalError
from convo_eval.core.sampling import jitter_ms


class BackoffPolicy(BaseModel, frozen=True):
    base_ms: int = Field(default=900, ge=0)
    cap_ms: int = Field(default=20_000, ge=0)
    jitter_ms: int = Field(default=400, ge=0)
    max_attempts: int = Field(default=6, ge=1)

    def delay_ms(self, attempt: int) -> int:
        """Delay before retrying after the given 1-based attempt."""
        exp = min(self.cap_ms, self.base_ms * 2 ** max(0, attempt - 1))
        return min(self.cap_ms, exp + jitter_ms(self.jitter_ms))

    def delay_seconds(self, attempt: int) -> float:
        return self.delay_ms(attempt) / 1000.0


type Sleeper = Callable[[float], Awaitable[None]]
type RetryListener = Callable[[int, str, float], None]


async def retry_async[T](
    call: Callable[[], Awaitable[T]],
    policy: BackoffPolicy,
    on_retry: RetryListener | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Run call, retrying retriable ConvoEvalErrors up to policy.max_attempts.

    Non-retriable errors, and the last retriable one, propagate unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await call()
        except ConvoEvalError as exc:
            if not exc.retriable or attempt == policy.max_attempts:
                raise
            delay = policy.delay_seconds(attempt)
            if on_retry is not None:
                on_retry(attempt, str(exc), delay)
            await sleep(delay)
    raise AssertionError("unreachable")
