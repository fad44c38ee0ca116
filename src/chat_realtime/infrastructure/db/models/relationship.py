from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Index, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from chat_realtime.infrastructure.db.base import Base


class RelationshipEdgeModel(Base):
    """One row per unordered user pair; user_low < user_high."""

    __tablename__ = "relationship_edges"

    user_low: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_high: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # pending | friends
    requester_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    __table_args__ = (
        CheckConstraint("user_low < user_high", name="ordered_pair"),
        CheckConstraint(
            "status <> 'pending' OR requester_id IN (user_low, user_high)",
            name="pending_requester",
        ),
        Index("ix_relationship_edges_high", "user_high", "user_low"),
    )
