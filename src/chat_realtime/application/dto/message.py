from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class MessageBodyDTO:
    client_msg_id: UUID
    text: str | None = None
    image_ref: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.text and self.text.strip()) and not self.image_ref
