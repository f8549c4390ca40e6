"""Ephemeral test identities owning every seeded fixture row."""

from typing import Protocol

from pydantic import BaseModel, Field


class EvalIdentity(BaseModel, frozen=True):
    user_id: str = Field(min_length=1)
    email: str = ""


class IdentityProvider(Protocol):
    async def create(self) -> EvalIdentity: ...

    async def delete(self, user_id: str) -> None: ...
