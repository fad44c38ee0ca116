"""Room naming for the real-time channel. Room names never leave the server."""
from __future__ import annotations

from uuid import UUID

USER_ROOM_PREFIX = "user:"
GROUP_ROOM_PREFIX = "group:"


def user_room(identity: int) -> str:
    return f"{USER_ROOM_PREFIX}{identity}"


def group_room(group_id: UUID | str) -> str:
    return f"{GROUP_ROOM_PREFIX}{group_id}"
