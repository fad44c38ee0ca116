from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.application.repositories.outbox import OutboxRecord
from chat_realtime.infrastructure.db.models.outbox import OutboxEventModel, OutboxStatus


class OutboxWriterRepo:
    def __init__(self, session: AsyncSession, *, max_attempts: int = 5) -> None:
        self._session = session
        self._max_attempts = max_attempts

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._session.add(OutboxEventModel(event_type=str(event_type), payload=payload))
        await self._session.flush()

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        stmt = (
            select(OutboxEventModel)
            .where(
                OutboxEventModel.status.in_([OutboxStatus.PENDING, OutboxStatus.FAILED]),
                OutboxEventModel.attempts < self._max_attempts,
            )
            .order_by(OutboxEventModel.id.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self._session.execute(stmt)

        # Head-of-line blocking: stop at the first record still backing off so
        # later events never overtake it.
        now = datetime.now(timezone.utc)
        rows: list[OutboxEventModel] = []
        for row in result.scalars().all():
            if row.next_retry_at is not None and row.next_retry_at > now:
                break
            rows.append(row)

        if rows:
            await self._session.execute(
                update(OutboxEventModel)
                .where(OutboxEventModel.id.in_([r.id for r in rows]))
                .values(status=OutboxStatus.PROCESSING)
            )
            await self._session.flush()

        return [
            OutboxRecord(
                id=r.id,
                event_type=r.event_type,
                payload=r.payload,
                attempts=r.attempts,
            )
            for r in rows
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        if not ids:
            return
        await self._session.execute(
            update(OutboxEventModel)
            .where(OutboxEventModel.id.in_(ids))
            .values(status=OutboxStatus.SENT)
        )

    async def release(self, ids: list[int]) -> None:
        if not ids:
            return
        await self._session.execute(
            update(OutboxEventModel)
            .where(
                OutboxEventModel.id.in_(ids),
                OutboxEventModel.status == OutboxStatus.PROCESSING,
            )
            .values(status=OutboxStatus.PENDING)
        )

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        await self._session.execute(
            update(OutboxEventModel)
            .where(OutboxEventModel.id == record_id)
            .values(
                status=OutboxStatus.FAILED,
                attempts=OutboxEventModel.attempts + 1,
                next_retry_at=next_retry_at,
            )
        )
