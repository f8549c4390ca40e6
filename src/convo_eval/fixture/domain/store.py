"""FixtureStore Protocol: write access to the rows a seeded identity owns."""

from typing import Any, Protocol


class FixtureStore(Protocol):
    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> None: ...

    async def insert_goal(self, row: dict[str, Any]) -> str: ...

    async def insert_plan(self, row: dict[str, Any]) -> str: ...

    async def insert_actions(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    async def insert_frameworks(self, rows: list[dict[str, Any]]) -> None: ...

    async def insert_vital(self, row: dict[str, Any]) -> None: ...

    async def insert_action_entries(self, rows: list[dict[str, Any]]) -> None: ...

    async def upsert_chat_state(self, row: dict[str, Any]) -> None: ...

    async def list_actions(self, user_id: str) -> list[dict[str, Any]]:
        """Active and pending tracked actions, oldest first."""
        ...

    async def has_active_plan(self, user_id: str) -> bool: ...
