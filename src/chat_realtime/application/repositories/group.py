from __future__ import annotations

from typing import Protocol
from uuid import UUID

from chat_realtime.domain.entities.group import Group


class GroupReader(Protocol):
    async def get_by_id(self, group_id: UUID, *, for_update: bool = False) -> Group | None: ...

    async def list_for_member(self, identity: int) -> list[Group]: ...


class GroupWriter(Protocol):
    async def create(self, group: Group) -> Group: ...

    async def save(self, group: Group) -> None:
        """Persist creator and the full member list of an existing group."""
        ...

    async def delete(self, group_id: UUID) -> None: ...
