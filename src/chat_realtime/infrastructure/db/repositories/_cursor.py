"""Keyset pagination cursors for message timelines.

Cursor format: urlsafe base64 of "<iso-timestamp>|<uuid>", padding stripped.
"""
from __future__ import annotations

import base64
from datetime import datetime
from uuid import UUID

from chat_realtime.application.exceptions import ValidationError


def encode_cursor(ts: datetime, uid: UUID) -> str:
    raw = f"{ts.isoformat()}|{uid}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    padded = cursor + "=" * ((4 - len(cursor) % 4) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode()).decode()
        ts_str, uid_str = raw.split("|", 1)
        return datetime.fromisoformat(ts_str), UUID(uid_str)
    except ValueError as exc:
        raise ValidationError("Malformed cursor") from exc
