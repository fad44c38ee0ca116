"""JSON-safe encoding of entities carried in outbox events and WS frames."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from chat_realtime.domain.entities.group import Group
from chat_realtime.domain.entities.message import Message


def encode_message(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "sender_id": message.sender_id,
        "target_kind": message.target_kind,
        "recipient_id": message.recipient_id,
        "group_id": str(message.group_id) if message.group_id else None,
        "text": message.text,
        "image_ref": message.image_ref,
        "client_msg_id": str(message.client_msg_id),
        "created_at": message.created_at.isoformat(),
    }


def decode_message(data: dict[str, Any]) -> Message:
    group_id = data.get("group_id")
    recipient_id = data.get("recipient_id")
    return Message(
        id=UUID(data["id"]),
        sender_id=int(data["sender_id"]),
        target_kind=data["target_kind"],
        recipient_id=int(recipient_id) if recipient_id is not None else None,
        group_id=UUID(group_id) if group_id else None,
        text=data.get("text"),
        image_ref=data.get("image_ref"),
        client_msg_id=UUID(data["client_msg_id"]),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def encode_group(group: Group) -> dict[str, Any]:
    return {
        "id": str(group.id),
        "name": group.name,
        "creator_id": group.creator_id,
        "members": list(group.members),
        "group_pic": group.group_pic,
        "created_at": group.created_at.isoformat(),
        "updated_at": group.updated_at.isoformat(),
    }


def decode_group(data: dict[str, Any]) -> Group:
    return Group(
        id=UUID(data["id"]),
        name=data["name"],
        creator_id=int(data["creator_id"]),
        members=tuple(int(m) for m in data["members"]),
        group_pic=data.get("group_pic", ""),
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
    )
