from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chat_realtime.application.dto.message import MessageBodyDTO


class SendMessageRequest(BaseModel):
    client_msg_id: UUID
    text: str | None = Field(None, max_length=4000)
    image_ref: str | None = Field(None, max_length=2048)

    def to_dto(self) -> MessageBodyDTO:
        return MessageBodyDTO(
            client_msg_id=self.client_msg_id,
            text=self.text,
            image_ref=self.image_ref,
        )


class MessageResponse(BaseModel):
    id: UUID
    sender_id: int
    target_kind: str
    recipient_id: int | None
    group_id: UUID | None
    text: str | None
    image_ref: str | None
    client_msg_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
