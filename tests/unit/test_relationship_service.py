from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import IntegrityFault, ValidationError
from chat_realtime.domain.entities.relationship import RelationshipEdge
from chat_realtime.domain.value_objects.enums import (
    EdgeStatus,
    PairState,
    RelationshipRole,
    RequestDirection,
)
from chat_realtime.services import relationship_service
from tests.conftest import ALICE, BOB, CAROL, FakeUoW


async def _records(uow: FakeUoW, *identities: int):
    return [await relationship_service.get_relationship(i, uow) for i in identities]


@pytest.mark.asyncio
async def test_request_then_accept_makes_mutual_friends(alice, bob):
    uow = FakeUoW()

    state = await relationship_service.send_request(alice, BOB, uow)
    assert state == PairState.REQUEST_SENT_BY_A
    a, b = await _records(uow, ALICE, BOB)
    assert a.sent == {BOB}
    assert b.received == {ALICE}

    state = await relationship_service.accept_request(bob, ALICE, uow)
    assert state == PairState.FRIENDS
    a, b = await _records(uow, ALICE, BOB)
    assert a.friends == {BOB} and b.friends == {ALICE}
    assert not (a.sent | a.received | b.sent | b.received)
    assert uow._committed is True


@pytest.mark.asyncio
async def test_crossed_requests_become_friends(alice, bob):
    uow = FakeUoW()
    await relationship_service.send_request(alice, BOB, uow)

    state = await relationship_service.send_request(bob, ALICE, uow)

    assert state == PairState.FRIENDS
    assert len(uow.relationships._edges) == 1
    a, b = await _records(uow, ALICE, BOB)
    assert a.friends == {BOB} and b.friends == {ALICE}
    assert not (a.sent | a.received | b.sent | b.received)


@pytest.mark.asyncio
async def test_cancel_with_wrong_role_changes_nothing(alice, bob):
    uow = FakeUoW()
    await relationship_service.send_request(alice, BOB, uow)
    before = dict(uow.relationships._edges)

    with pytest.raises(ValidationError):
        await relationship_service.cancel_or_reject(alice, BOB, RelationshipRole.RECEIVED, uow)
    with pytest.raises(ValidationError):
        await relationship_service.cancel_or_reject(bob, ALICE, RelationshipRole.FRIEND, uow)

    assert uow.relationships._edges == before
    assert uow._rolled_back is True


@pytest.mark.asyncio
async def test_reject_and_unfriend(alice, bob, carol):
    uow = FakeUoW()
    await relationship_service.send_request(alice, BOB, uow)
    await relationship_service.cancel_or_reject(bob, ALICE, RelationshipRole.RECEIVED, uow)
    assert uow.relationships._edges == {}

    await relationship_service.send_request(carol, ALICE, uow)
    await relationship_service.accept_request(alice, CAROL, uow)
    await relationship_service.cancel_or_reject(carol, ALICE, RelationshipRole.FRIEND, uow)
    a, c = await _records(uow, ALICE, CAROL)
    assert not a.friends and not c.friends


@pytest.mark.asyncio
async def test_failed_write_is_integrity_fault(alice, bob):
    uow = FakeUoW()
    await relationship_service.send_request(alice, BOB, uow)
    uow.relationships_w.fail_writes = True

    with pytest.raises(IntegrityFault):
        await relationship_service.accept_request(bob, ALICE, uow)

    assert uow._rolled_back is True
    edge = uow.relationships._edges[(ALICE, BOB)]
    assert edge.status == EdgeStatus.PENDING


@pytest.mark.asyncio
async def test_concurrent_crossed_requests_end_as_friends(alice, bob):
    uow = FakeUoW()

    results = await asyncio.gather(
        relationship_service.send_request(alice, BOB, uow),
        relationship_service.send_request(bob, ALICE, uow),
    )

    assert PairState.FRIENDS in results
    assert uow.relationships._edges[(ALICE, BOB)].status == EdgeStatus.FRIENDS


@pytest.mark.asyncio
async def test_inconsistent_record_is_integrity_fault():
    uow = FakeUoW()
    now = datetime.now(timezone.utc)
    friends = RelationshipEdge(ALICE, BOB, EdgeStatus.FRIENDS, None, now, now)
    stale = RelationshipEdge(ALICE, BOB, EdgeStatus.PENDING, ALICE, now, now)
    # Two facts for one pair: BOB ends up both friend and pending.
    uow.relationships._edges[(ALICE, BOB)] = friends
    uow.relationships._edges[(0, ALICE)] = stale

    with pytest.raises(IntegrityFault):
        await relationship_service.get_relationship(ALICE, uow)


@pytest.mark.asyncio
async def test_lists_and_pair_state(alice, bob, carol):
    uow = FakeUoW()
    await relationship_service.send_request(alice, BOB, uow)
    await relationship_service.send_request(carol, ALICE, uow)

    assert await relationship_service.list_requests(ALICE, RequestDirection.SENT, uow) == [BOB]
    assert await relationship_service.list_requests(ALICE, RequestDirection.RECEIVED, uow) == [CAROL]
    assert await relationship_service.list_friends(ALICE, uow) == []
    assert await relationship_service.get_pair_state(BOB, ALICE, uow) == PairState.REQUEST_SENT_BY_B


@pytest.mark.asyncio
async def test_self_request_rejected():
    uow = FakeUoW()
    with pytest.raises(ValidationError):
        await relationship_service.send_request(Principal(identity=ALICE), ALICE, uow)
    assert uow.relationships._edges == {}
