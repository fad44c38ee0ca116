from __future__ import annotations

from typing import Protocol

from chat_realtime.application.repositories.group import GroupReader, GroupWriter
from chat_realtime.application.repositories.message import MessageReader, MessageWriter
from chat_realtime.application.repositories.outbox import OutboxWriter
from chat_realtime.application.repositories.relationship import (
    RelationshipReader,
    RelationshipWriter,
)


class UnitOfWork(Protocol):
    messages: MessageReader
    messages_w: MessageWriter
    groups: GroupReader
    groups_w: GroupWriter
    relationships: RelationshipReader
    relationships_w: RelationshipWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
