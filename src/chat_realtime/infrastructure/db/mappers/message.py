from __future__ import annotations

from chat_realtime.domain.entities.message import Message
from chat_realtime.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        target_kind=model.target_kind,
        recipient_id=model.recipient_id,
        group_id=model.group_id,
        text=model.text,
        image_ref=model.image_ref,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
    )


def entity_to_values(entity: Message) -> dict:
    return {
        "id": entity.id,
        "sender_id": entity.sender_id,
        "target_kind": entity.target_kind,
        "recipient_id": entity.recipient_id,
        "group_id": entity.group_id,
        "text": entity.text,
        "image_ref": entity.image_ref,
        "client_msg_id": entity.client_msg_id,
        "created_at": entity.created_at,
    }
