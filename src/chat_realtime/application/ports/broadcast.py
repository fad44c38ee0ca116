from __future__ import annotations

from typing import Any, Iterable, Protocol


class RoomBroadcaster(Protocol):
    """Live delivery surface the fan-out dispatcher publishes into."""

    async def broadcast(self, room: str, event: str, payload: dict[str, Any]) -> int: ...

    async def broadcast_to_rooms(
        self,
        rooms: Iterable[str],
        event: str,
        payload: dict[str, Any],
    ) -> int: ...

    def remove_identity_from_room(self, identity: int, room: str) -> int: ...
