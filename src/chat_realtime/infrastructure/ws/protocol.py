"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join-group | leave-group | open-conversation | close-conversation | dismiss-notification
    # | set-notification-preferences | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # see OutboundEvent
    data: dict[str, Any] = {}
