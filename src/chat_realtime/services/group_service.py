from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from chat_realtime.application.dto.payloads import encode_group
from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import ValidationError
from chat_realtime.application.policies.permissions import (
    assert_group_creator,
    assert_group_member,
)
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.group import Group
from chat_realtime.domain.value_objects.enums import OutboxEventType

logger = logging.getLogger(__name__)


async def create_group(
    principal: Principal,
    name: str,
    member_ids: list[int],
    group_pic: str | None,
    uow: UnitOfWork,
) -> Group:
    """Create a group; the creator is always a member."""
    name = name.strip()
    if not name:
        raise ValidationError("Group name is required")
    if not member_ids:
        raise ValidationError("At least one member is required")

    members: list[int] = []
    for identity in [*member_ids, principal.identity]:
        if identity not in members:
            members.append(identity)

    now = datetime.now(timezone.utc)
    group = Group(
        id=uuid.uuid4(),
        name=name,
        creator_id=principal.identity,
        members=tuple(members),
        group_pic=group_pic or "",
        created_at=now,
        updated_at=now,
    )
    group = await uow.groups_w.create(group)
    await uow.outbox.add(OutboxEventType.GROUP_CREATED, {"group": encode_group(group)})
    await uow.commit()
    logger.info("Group %s created by %s with %d members", group.id, principal.identity, len(members))
    return group


async def list_user_groups(principal: Principal, uow: UnitOfWork) -> list[Group]:
    return await uow.groups.list_for_member(principal.identity)


async def get_group(group_id: uuid.UUID, principal: Principal, uow: UnitOfWork) -> Group:
    group = await uow.groups.get_by_id(group_id)
    return assert_group_member(principal, group)


async def add_members(
    group_id: uuid.UUID,
    principal: Principal,
    member_ids: list[int],
    uow: UnitOfWork,
) -> Group:
    group = await uow.groups.get_by_id(group_id, for_update=True)
    group = assert_group_member(principal, group)

    updated, added = group.with_members(member_ids, datetime.now(timezone.utc))
    if not added:
        return group

    await uow.groups_w.save(updated)
    await uow.outbox.add(
        OutboxEventType.MEMBERS_ADDED,
        {"group": encode_group(updated), "added": added},
    )
    await uow.commit()
    logger.info("Added %s to group %s", added, group_id)
    return updated


async def remove_member(
    group_id: uuid.UUID,
    principal: Principal,
    member_id: int,
    uow: UnitOfWork,
) -> Group:
    group = await uow.groups.get_by_id(group_id, for_update=True)
    group = assert_group_member(principal, group)
    assert_group_creator(principal, group)
    if member_id == principal.identity:
        raise ValidationError("Use leave to remove yourself")
    if not group.has_member(member_id):
        raise ValidationError("User is not a member of this group")

    updated = group.without_member(member_id, datetime.now(timezone.utc))
    # The creator stays, so the group cannot become empty here.
    assert updated is not None

    await uow.groups_w.save(updated)
    await uow.outbox.add(
        OutboxEventType.MEMBER_REMOVED,
        {"group": encode_group(updated), "member_id": member_id},
    )
    await uow.commit()
    logger.info("Removed %s from group %s", member_id, group_id)
    return updated


async def leave_group(
    group_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Group | None:
    """Leave a group. Returns the remaining group, or None if it was disbanded."""
    group = await uow.groups.get_by_id(group_id, for_update=True)
    group = assert_group_member(principal, group)

    updated = group.without_member(principal.identity, datetime.now(timezone.utc))
    if updated is None:
        await uow.groups_w.delete(group_id)
    else:
        await uow.groups_w.save(updated)
        if updated.creator_id != group.creator_id:
            logger.info("Group %s handed over to %s", group_id, updated.creator_id)

    await uow.outbox.add(
        OutboxEventType.MEMBER_LEFT,
        {
            "group_id": str(group_id),
            "member_id": principal.identity,
            "group": encode_group(updated) if updated else None,
        },
    )
    await uow.commit()
    logger.info(
        "User %s left group %s%s",
        principal.identity,
        group_id,
        " (disbanded)" if updated is None else "",
    )
    return updated


async def is_member(group_id: uuid.UUID, identity: int, uow: UnitOfWork) -> bool:
    group = await uow.groups.get_by_id(group_id)
    return group is not None and group.has_member(identity)
