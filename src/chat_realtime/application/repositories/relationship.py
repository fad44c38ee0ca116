from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.relationship import RelationshipEdge


class RelationshipReader(Protocol):
    async def get_edge(
        self,
        user_a: int,
        user_b: int,
        *,
        for_update: bool = False,
    ) -> RelationshipEdge | None: ...

    async def list_edges(self, identity: int) -> list[RelationshipEdge]: ...


class RelationshipWriter(Protocol):
    async def insert(self, edge: RelationshipEdge) -> None:
        """Raise ConflictError if the pair already has an edge."""
        ...

    async def update(self, edge: RelationshipEdge) -> None:
        """Raise IntegrityFault unless exactly one edge was updated."""
        ...

    async def delete(self, user_a: int, user_b: int) -> None:
        """Raise IntegrityFault unless exactly one edge was deleted."""
        ...
