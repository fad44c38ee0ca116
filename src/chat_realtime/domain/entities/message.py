from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from chat_realtime.domain.value_objects.enums import TargetKind


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: int
    target_kind: str
    recipient_id: int | None
    group_id: UUID | None
    text: str | None
    image_ref: str | None
    client_msg_id: UUID
    created_at: datetime

    @property
    def is_group(self) -> bool:
        return self.target_kind == TargetKind.GROUP

