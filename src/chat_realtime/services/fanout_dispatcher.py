"""Routes persisted chat events to the rooms of their live recipients."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from chat_realtime.application.dto.payloads import (
    decode_group,
    decode_message,
    encode_group,
    encode_message,
)
from chat_realtime.application.ports.broadcast import RoomBroadcaster
from chat_realtime.domain.entities.group import Group
from chat_realtime.domain.entities.message import Message
from chat_realtime.domain.value_objects.enums import OutboundEvent, OutboxEventType
from chat_realtime.domain.value_objects.rooms import group_room, user_room

logger = logging.getLogger(__name__)


def _member_rooms(members: Iterable[int], *, exclude: int | None = None) -> list[str]:
    return [user_room(m) for m in members if m != exclude]


class FanoutDispatcher:
    """Turns outbox events into outbound real-time events.

    Events must be handed over in persistence order; the dispatcher keeps that
    order because every broadcast completes before the next event is taken.
    """

    def __init__(self, broadcaster: RoomBroadcaster) -> None:
        self._broadcaster = broadcaster

    async def handle(self, event_type: str, data: dict[str, Any]) -> None:
        """Entry point for events arriving from the fan-out bus."""
        if event_type == OutboxEventType.MESSAGE_CREATED:
            raw_group = data.get("group")
            await self.dispatch_message(
                decode_message(data["message"]),
                decode_group(raw_group) if raw_group else None,
            )
        elif event_type == OutboxEventType.GROUP_CREATED:
            await self.group_created(decode_group(data["group"]))
        elif event_type == OutboxEventType.MEMBERS_ADDED:
            await self.members_added(decode_group(data["group"]), [int(m) for m in data["added"]])
        elif event_type == OutboxEventType.MEMBER_REMOVED:
            await self.member_removed(decode_group(data["group"]), int(data["member_id"]))
        elif event_type == OutboxEventType.MEMBER_LEFT:
            raw_group = data.get("group")
            await self.member_left(
                data["group_id"],
                int(data["member_id"]),
                decode_group(raw_group) if raw_group else None,
            )
        else:
            logger.debug("Ignoring unknown fan-out event: %s", event_type)

    async def dispatch_message(self, message: Message, group: Group | None = None) -> int:
        payload = encode_message(message)
        if not message.is_group:
            assert message.recipient_id is not None
            return await self._broadcaster.broadcast(
                user_room(message.recipient_id),
                OutboundEvent.PRIVATE_MESSAGE,
                {"message": payload},
            )

        if group is None or group.id != message.group_id:
            raise ValueError(f"Group snapshot missing for message {message.id}")
        # The sender already has the message from its own send confirmation.
        return await self._broadcaster.broadcast_to_rooms(
            _member_rooms(group.members, exclude=message.sender_id),
            OutboundEvent.GROUP_MESSAGE,
            {"message": payload, "group": encode_group(group)},
        )

    async def group_created(self, group: Group) -> int:
        return await self._broadcaster.broadcast_to_rooms(
            _member_rooms(group.members),
            OutboundEvent.GROUP_CREATED,
            {"group": encode_group(group)},
        )

    async def members_added(self, group: Group, added: list[int]) -> int:
        snapshot = {"group": encode_group(group)}
        delivered = await self._broadcaster.broadcast_to_rooms(
            _member_rooms(added), OutboundEvent.MEMBER_ADDED, snapshot,
        )
        delivered += await self._broadcaster.broadcast_to_rooms(
            _member_rooms(group.members), OutboundEvent.MEMBERSHIP_CHANGED, snapshot,
        )
        return delivered

    async def member_removed(self, group: Group, member_id: int) -> int:
        self._broadcaster.remove_identity_from_room(member_id, group_room(group.id))
        snapshot = {"group": encode_group(group)}
        delivered = await self._broadcaster.broadcast(
            user_room(member_id), OutboundEvent.REMOVED_FROM_GROUP, snapshot,
        )
        delivered += await self._broadcaster.broadcast_to_rooms(
            _member_rooms(group.members), OutboundEvent.MEMBERSHIP_CHANGED, snapshot,
        )
        return delivered

    async def member_left(self, group_id: str, member_id: int, group: Group | None) -> int:
        self._broadcaster.remove_identity_from_room(member_id, group_room(group_id))
        delivered = 0
        if group is None:
            delivered += await self._broadcaster.broadcast(
                user_room(member_id), OutboundEvent.GROUP_DISBANDED, {"group_id": str(group_id)},
            )
        else:
            delivered += await self._broadcaster.broadcast_to_rooms(
                _member_rooms(group.members),
                OutboundEvent.MEMBERSHIP_CHANGED,
                {"group": encode_group(group)},
            )
        delivered += await self._broadcaster.broadcast(
            user_room(member_id), OutboundEvent.LEFT_GROUP, {"group_id": str(group_id)},
        )
        return delivered
