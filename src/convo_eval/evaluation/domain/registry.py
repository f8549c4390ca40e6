"""RunRegistry Protocol: lookup and persistence of run rows by idempotency key."""

from typing import Protocol

from convo_eval.evaluation.domain.run import EvalRun


class RunRegistry(Protocol):
    """Backing store for EvalRun rows.

    ``upsert`` inserts a row whose id is unknown and replaces it otherwise, so
    every retry of a scenario keeps updating the same row.
    """

    async def find_by_key(self, request_id: str) -> EvalRun | None: ...

    async def upsert(self, run: EvalRun) -> None: ...
