from __future__ import annotations

import uuid

import pytest

from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from chat_realtime.domain.value_objects.enums import OutboxEventType
from chat_realtime.services import group_service
from tests.conftest import ALICE, BOB, CAROL, DAVE, FakeUoW, make_group


@pytest.fixture
def uow_with_group():
    uow = FakeUoW()
    group = make_group(creator_id=ALICE, members=(ALICE, BOB, CAROL))
    uow.groups._store[group.id] = group
    return uow, group


@pytest.mark.asyncio
async def test_create_group_adds_creator(alice):
    uow = FakeUoW()

    group = await group_service.create_group(alice, "  trip  ", [BOB, CAROL, BOB], None, uow)

    assert group.name == "trip"
    assert group.creator_id == ALICE
    assert group.members == (BOB, CAROL, ALICE)
    assert uow.outbox.types() == [OutboxEventType.GROUP_CREATED]
    assert uow._committed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("name, members", [("", [BOB]), ("trip", [])])
async def test_create_group_requires_name_and_members(alice, name, members):
    uow = FakeUoW()
    with pytest.raises(ValidationError):
        await group_service.create_group(alice, name, members, None, uow)
    assert uow.groups._store == {}


@pytest.mark.asyncio
async def test_creator_leaving_hands_over_group(alice, uow_with_group):
    uow, group = uow_with_group

    remaining = await group_service.leave_group(group.id, alice, uow)

    assert remaining is not None
    assert ALICE not in remaining.members
    assert remaining.creator_id in remaining.members
    assert remaining.creator_id == BOB
    record = uow.outbox._records[-1]
    assert record["event_type"] == OutboxEventType.MEMBER_LEFT
    assert record["payload"]["member_id"] == ALICE
    assert record["payload"]["group"]["creator_id"] == BOB


@pytest.mark.asyncio
async def test_last_member_leaving_deletes_group(alice):
    uow = FakeUoW()
    group = make_group(creator_id=ALICE, members=(ALICE,))
    uow.groups._store[group.id] = group

    remaining = await group_service.leave_group(group.id, alice, uow)

    assert remaining is None
    assert group.id not in uow.groups._store
    assert uow.outbox._records[-1]["payload"]["group"] is None


@pytest.mark.asyncio
async def test_add_members_requires_membership(uow_with_group):
    uow, group = uow_with_group
    with pytest.raises(ForbiddenError):
        await group_service.add_members(group.id, Principal(identity=DAVE), [DAVE], uow)


@pytest.mark.asyncio
async def test_add_members_reports_only_new(bob, uow_with_group):
    uow, group = uow_with_group

    updated = await group_service.add_members(group.id, bob, [CAROL, DAVE], uow)

    assert updated.members == (ALICE, BOB, CAROL, DAVE)
    record = uow.outbox._records[-1]
    assert record["event_type"] == OutboxEventType.MEMBERS_ADDED
    assert record["payload"]["added"] == [DAVE]


@pytest.mark.asyncio
async def test_add_existing_members_is_noop(bob, uow_with_group):
    uow, group = uow_with_group
    updated = await group_service.add_members(group.id, bob, [CAROL], uow)
    assert updated == group
    assert uow.outbox._records == []


@pytest.mark.asyncio
async def test_only_creator_removes_members(alice, bob, uow_with_group):
    uow, group = uow_with_group

    with pytest.raises(ForbiddenError):
        await group_service.remove_member(group.id, bob, CAROL, uow)

    updated = await group_service.remove_member(group.id, alice, CAROL, uow)
    assert updated.members == (ALICE, BOB)
    assert uow.outbox._records[-1]["payload"]["member_id"] == CAROL


@pytest.mark.asyncio
async def test_remove_member_validation(alice, uow_with_group):
    uow, group = uow_with_group
    with pytest.raises(ValidationError):
        await group_service.remove_member(group.id, alice, ALICE, uow)
    with pytest.raises(ValidationError):
        await group_service.remove_member(group.id, alice, DAVE, uow)


@pytest.mark.asyncio
async def test_unknown_group_not_found(alice):
    with pytest.raises(NotFoundError):
        await group_service.get_group(uuid.uuid4(), alice, FakeUoW())


@pytest.mark.asyncio
async def test_list_and_membership(alice, uow_with_group):
    uow, group = uow_with_group
    assert await group_service.list_user_groups(alice, uow) == [group]
    assert await group_service.is_member(group.id, BOB, uow) is True
    assert await group_service.is_member(group.id, DAVE, uow) is False
    assert await group_service.is_member(uuid.uuid4(), ALICE, uow) is False
