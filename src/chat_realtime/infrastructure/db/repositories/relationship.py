from __future__ import annotations

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.application.exceptions import ConflictError, IntegrityFault
from chat_realtime.domain.entities.relationship import RelationshipEdge, ordered_pair
from chat_realtime.infrastructure.db.mappers import relationship as mapper
from chat_realtime.infrastructure.db.models.relationship import RelationshipEdgeModel


class RelationshipReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_edge(
        self,
        user_a: int,
        user_b: int,
        *,
        for_update: bool = False,
    ) -> RelationshipEdge | None:
        low, high = ordered_pair(user_a, user_b)
        stmt = select(RelationshipEdgeModel).where(
            RelationshipEdgeModel.user_low == low,
            RelationshipEdgeModel.user_high == high,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_edges(self, identity: int) -> list[RelationshipEdge]:
        stmt = select(RelationshipEdgeModel).where(
            or_(
                RelationshipEdgeModel.user_low == identity,
                RelationshipEdgeModel.user_high == identity,
            )
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class RelationshipWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, edge: RelationshipEdge) -> None:
        self._session.add(mapper.entity_to_model(edge))
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError("Relationship changed concurrently, retry") from exc

    async def update(self, edge: RelationshipEdge) -> None:
        stmt = (
            update(RelationshipEdgeModel)
            .where(
                RelationshipEdgeModel.user_low == edge.user_low,
                RelationshipEdgeModel.user_high == edge.user_high,
            )
            .values(
                status=edge.status,
                requester_id=edge.requester_id,
                updated_at=edge.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise IntegrityFault(f"Updating edge {edge.pair} touched {result.rowcount} rows")

    async def delete(self, user_a: int, user_b: int) -> None:
        low, high = ordered_pair(user_a, user_b)
        stmt = (
            delete(RelationshipEdgeModel)
            .where(
                RelationshipEdgeModel.user_low == low,
                RelationshipEdgeModel.user_high == high,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise IntegrityFault(f"Deleting edge {(low, high)} touched {result.rowcount} rows")
