"""PlanGenerator Protocol: the external plan generation endpoint."""

from typing import Any, Protocol


class PlanGenerator(Protocol):
    async def generate(self, payload: dict[str, Any], request_id: str) -> dict[str, Any]: ...
