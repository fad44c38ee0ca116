from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy import text as sa_text  # `text` is also a column below
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from chat_realtime.infrastructure.db.base import Base


class MessageModel(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=sa_text("gen_random_uuid()"),
    )
    sender_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    target_kind: Mapped[str] = mapped_column(String(10), nullable=False)  # user | group
    recipient_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    group_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
    )
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_msg_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa_text("now()"),
    )

    __table_args__ = (
        UniqueConstraint("sender_id", "client_msg_id", name="uq_message_idempotency"),
        Index("ix_messages_private_timeline", "sender_id", "recipient_id", "created_at", "id"),
        Index("ix_messages_group_timeline", "group_id", "created_at", "id"),
    )
