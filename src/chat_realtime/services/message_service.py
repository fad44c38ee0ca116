from __future__ import annotations

import uuid
from datetime import datetime, timezone

from chat_realtime.application.dto.message import MessageBodyDTO
from chat_realtime.application.dto.payloads import encode_group, encode_message
from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import ValidationError
from chat_realtime.application.policies.permissions import assert_group_member
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.group import Group
from chat_realtime.domain.entities.message import Message
from chat_realtime.domain.value_objects.enums import OutboxEventType, TargetKind


def _build(
    principal: Principal,
    body: MessageBodyDTO,
    *,
    recipient_id: int | None = None,
    group_id: uuid.UUID | None = None,
) -> Message:
    if body.is_empty:
        raise ValidationError("Message needs text or an image")
    return Message(
        id=uuid.uuid4(),
        sender_id=principal.identity,
        target_kind=TargetKind.GROUP if group_id else TargetKind.USER,
        recipient_id=recipient_id,
        group_id=group_id,
        text=body.text,
        image_ref=body.image_ref,
        client_msg_id=body.client_msg_id,
        created_at=datetime.now(timezone.utc),
    )


async def _persist(message: Message, group: Group | None, uow: UnitOfWork) -> tuple[Message, bool]:
    message, created = await uow.messages_w.create_if_not_exists(message)
    if created:
        # Same transaction as the message: fan-out only ever sees durable rows.
        await uow.outbox.add(
            OutboxEventType.MESSAGE_CREATED,
            {
                "message": encode_message(message),
                "group": encode_group(group) if group else None,
            },
        )
        await uow.commit()
    return message, created


async def send_private_message(
    principal: Principal,
    recipient_id: int,
    body: MessageBodyDTO,
    uow: UnitOfWork,
) -> tuple[Message, bool]:
    """Create a direct message idempotently.

    Returns (message, created). If a message with the same client_msg_id
    already exists the existing one is returned with created=False.
    """
    message = _build(principal, body, recipient_id=recipient_id)
    return await _persist(message, None, uow)


async def send_group_message(
    principal: Principal,
    group_id: uuid.UUID,
    body: MessageBodyDTO,
    uow: UnitOfWork,
) -> tuple[Message, bool]:
    group = await uow.groups.get_by_id(group_id)
    group = assert_group_member(principal, group)
    message = _build(principal, body, group_id=group_id)
    return await _persist(message, group, uow)


async def list_private_messages(
    principal: Principal,
    peer_id: int,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    return await uow.messages.list_private(
        principal.identity, peer_id, cursor=cursor, limit=limit,
    )


async def list_group_messages(
    principal: Principal,
    group_id: uuid.UUID,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    group = await uow.groups.get_by_id(group_id)
    assert_group_member(principal, group)
    return await uow.messages.list_group(group_id, cursor=cursor, limit=limit)
