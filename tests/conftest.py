"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import ConflictError, IntegrityFault
from chat_realtime.application.repositories.outbox import OutboxRecord
from chat_realtime.domain.entities.group import Group
from chat_realtime.domain.entities.message import Message
from chat_realtime.domain.entities.relationship import RelationshipEdge, ordered_pair
from chat_realtime.domain.value_objects.enums import TargetKind
from chat_realtime.infrastructure.ws.protocol import WsOutbound

ALICE = 1
BOB = 2
CAROL = 3
DAVE = 4


@pytest.fixture
def alice() -> Principal:
    return Principal(identity=ALICE)


@pytest.fixture
def bob() -> Principal:
    return Principal(identity=BOB)


@pytest.fixture
def carol() -> Principal:
    return Principal(identity=CAROL)


def make_group(
    *,
    group_id: UUID | None = None,
    creator_id: int = ALICE,
    members: tuple[int, ...] = (ALICE, BOB, CAROL),
    name: str = "crew",
) -> Group:
    now = datetime.now(timezone.utc)
    return Group(
        id=group_id or uuid.uuid4(),
        name=name,
        creator_id=creator_id,
        members=members,
        group_pic="",
        created_at=now,
        updated_at=now,
    )


def make_message(
    *,
    sender_id: int = ALICE,
    recipient_id: int | None = BOB,
    group_id: UUID | None = None,
    text: str = "hello",
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        target_kind=TargetKind.GROUP if group_id else TargetKind.USER,
        recipient_id=None if group_id else recipient_id,
        group_id=group_id,
        text=text,
        image_ref=None,
        client_msg_id=uuid.uuid4(),
        created_at=created_at or datetime.now(timezone.utc),
    )


class FakeClock:
    """Manually driven clock; `tick` moves both wall and monotonic time."""

    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._mono = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._mono

    def tick(self, seconds: float) -> float:
        self._now += timedelta(seconds=seconds)
        self._mono += seconds
        return self._mono


class RecordingTransport:
    """Stands in for a WebSocket; can be told to fail like a dead socket."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.frames: list[WsOutbound] = []

    async def send(self, envelope: WsOutbound, raw: str) -> None:
        if self.fail:
            raise ConnectionResetError("socket closed")
        self.frames.append(envelope)

    def types(self) -> list[str]:
        return [f.type for f in self.frames]

    def of_type(self, event: str) -> list[dict[str, Any]]:
        return [f.data for f in self.frames if f.type == event]


# -- repositories ------------------------------------------------------------


@dataclass
class FakeGroupReader:
    _store: dict[UUID, Group] = field(default_factory=dict)

    async def get_by_id(self, group_id: UUID, *, for_update: bool = False) -> Group | None:
        return self._store.get(group_id)

    async def list_for_member(self, identity: int) -> list[Group]:
        return [g for g in self._store.values() if g.has_member(identity)]


@dataclass
class FakeGroupWriter:
    _reader: FakeGroupReader

    async def create(self, group: Group) -> Group:
        self._reader._store[group.id] = group
        return group

    async def save(self, group: Group) -> None:
        self._reader._store[group.id] = group

    async def delete(self, group_id: UUID) -> None:
        self._reader._store.pop(group_id, None)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_private(self, user_a: int, user_b: int, *, cursor: str | None = None, limit: int = 50) -> list[Message]:
        pair = {user_a, user_b}
        return [
            m for m in self._messages
            if not m.is_group and {m.sender_id, m.recipient_id} == pair
        ][:limit]

    async def list_group(self, group_id: UUID, *, cursor: str | None = None, limit: int = 50) -> list[Message]:
        return [m for m in self._messages if m.group_id == group_id][:limit]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        existing = await self.get_by_client_msg_id(message.sender_id, message.client_msg_id)
        if existing is not None:
            return existing, False
        self._reader._messages.append(message)
        return message, True

    async def get_by_client_msg_id(self, sender_id: int, client_msg_id: UUID) -> Message | None:
        for m in self._reader._messages:
            if m.sender_id == sender_id and m.client_msg_id == client_msg_id:
                return m
        return None


@dataclass
class FakeRelationshipReader:
    _edges: dict[tuple[int, int], RelationshipEdge] = field(default_factory=dict)

    async def get_edge(self, user_a: int, user_b: int, *, for_update: bool = False) -> RelationshipEdge | None:
        return self._edges.get(ordered_pair(user_a, user_b))

    async def list_edges(self, identity: int) -> list[RelationshipEdge]:
        return [e for e in self._edges.values() if e.involves(identity)]


@dataclass
class FakeRelationshipWriter:
    _reader: FakeRelationshipReader
    fail_writes: bool = False

    async def insert(self, edge: RelationshipEdge) -> None:
        if edge.pair in self._reader._edges:
            raise ConflictError("Relationship changed concurrently, retry")
        self._reader._edges[edge.pair] = edge

    async def update(self, edge: RelationshipEdge) -> None:
        if self.fail_writes or edge.pair not in self._reader._edges:
            raise IntegrityFault(f"Updating edge {edge.pair} touched 0 rows")
        self._reader._edges[edge.pair] = edge

    async def delete(self, user_a: int, user_b: int) -> None:
        pair = ordered_pair(user_a, user_b)
        if self.fail_writes or pair not in self._reader._edges:
            raise IntegrityFault(f"Deleting edge {pair} touched 0 rows")
        del self._reader._edges[pair]


@dataclass
class FakeOutboxWriter:
    """Mirrors the SQL outbox lifecycle: pending -> processing -> sent | failed.

    `now` pins the clock used for retry scheduling; None means wall time.
    """
    _records: list[dict[str, Any]] = field(default_factory=list)
    max_attempts: int = 5
    now: datetime | None = None

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._records.append({
            "id": len(self._records) + 1,
            "event_type": event_type,
            "payload": payload,
            "status": "pending",
            "attempts": 0,
            "next_retry_at": None,
        })

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        now = self.now or datetime.now(timezone.utc)
        picked: list[dict[str, Any]] = []
        for r in self._records:
            if r["status"] not in ("pending", "failed") or r["attempts"] >= self.max_attempts:
                continue
            if r["next_retry_at"] is not None and r["next_retry_at"] > now:
                break
            picked.append(r)
            if len(picked) == batch_size:
                break
        for r in picked:
            r["status"] = "processing"
        return [
            OutboxRecord(id=r["id"], event_type=r["event_type"], payload=r["payload"], attempts=r["attempts"])
            for r in picked
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        for r in self._by_id(ids):
            r["status"] = "sent"

    async def release(self, ids: list[int]) -> None:
        for r in self._by_id(ids):
            if r["status"] == "processing":
                r["status"] = "pending"

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        for r in self._by_id([record_id]):
            r["status"] = "failed"
            r["attempts"] += 1
            r["next_retry_at"] = next_retry_at

    def _by_id(self, ids: list[int]) -> list[dict[str, Any]]:
        return [r for r in self._records if r["id"] in ids]

    def types(self) -> list[str]:
        return [r["event_type"] for r in self._records]

    def statuses(self) -> list[str]:
        return [r["status"] for r in self._records]



@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    groups: FakeGroupReader = field(default_factory=FakeGroupReader)
    groups_w: FakeGroupWriter | None = None
    relationships: FakeRelationshipReader = field(default_factory=FakeRelationshipReader)
    relationships_w: FakeRelationshipWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.groups_w is None:
            self.groups_w = FakeGroupWriter(self.groups)
        if self.relationships_w is None:
            self.relationships_w = FakeRelationshipWriter(self.relationships)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True
