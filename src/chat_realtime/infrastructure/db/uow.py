from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.config import settings
from chat_realtime.infrastructure.db.repositories.group import GroupReaderRepo, GroupWriterRepo
from chat_realtime.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from chat_realtime.infrastructure.db.repositories.outbox import OutboxWriterRepo
from chat_realtime.infrastructure.db.repositories.relationship import (
    RelationshipReaderRepo,
    RelationshipWriterRepo,
)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.groups = GroupReaderRepo(session)
        self.groups_w = GroupWriterRepo(session)
        self.relationships = RelationshipReaderRepo(session)
        self.relationships_w = RelationshipWriterRepo(session)
        self.outbox = OutboxWriterRepo(session, max_attempts=settings.OUTBOX_MAX_ATTEMPTS)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
