"""In-process registry of live sessions and the rooms they joined."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from chat_realtime.domain.value_objects.enums import OutboundEvent
from chat_realtime.domain.value_objects.rooms import user_room
from chat_realtime.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """One live connection. `raw` is `envelope` already serialized."""

    async def send(self, envelope: WsOutbound, raw: str) -> None: ...


@dataclass(eq=False, slots=True)
class Session:
    identity: int
    transport: Transport
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    rooms: set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Tracks sessions per identity and room membership per session.

    Owned by the application (created in the factory, closed on shutdown).
    Delivery is best effort: nothing is queued for sessions that are gone.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._by_identity: dict[int, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}

    # -- lifecycle -----------------------------------------------------------

    async def connect(self, identity: int | None, transport: Transport) -> Session | None:
        if identity is None:
            logger.debug("Dropping anonymous transport")
            return None
        session = Session(identity=identity, transport=transport)
        self._sessions[session.id] = session
        self._by_identity.setdefault(identity, set()).add(session.id)
        self.join_room(session, user_room(identity))
        logger.debug(
            "Session %s connected for %s (sessions=%d)",
            session.id, identity, len(self._sessions),
        )
        await self._publish_presence()
        return session

    async def disconnect(self, session: Session) -> None:
        if not self._drop(session):
            return
        logger.debug("Session %s disconnected for %s", session.id, session.identity)
        await self._publish_presence()

    async def close(self) -> None:
        count = len(self._sessions)
        self._sessions.clear()
        self._by_identity.clear()
        self._rooms.clear()
        logger.info("Connection registry closed (%d sessions dropped)", count)

    def _drop(self, session: Session) -> bool:
        if self._sessions.pop(session.id, None) is None:
            return False
        for room in list(session.rooms):
            self._leave(session, room)
        ids = self._by_identity.get(session.identity)
        if ids is not None:
            ids.discard(session.id)
            if not ids:
                del self._by_identity[session.identity]
        return True

    # -- rooms ---------------------------------------------------------------

    def join_room(self, session: Session, room: str) -> None:
        if session.id not in self._sessions:
            return
        session.rooms.add(room)
        self._rooms.setdefault(room, set()).add(session.id)

    def leave_room(self, session: Session, room: str) -> None:
        self._leave(session, room)

    def _leave(self, session: Session, room: str) -> None:
        session.rooms.discard(room)
        members = self._rooms.get(room)
        if members is not None:
            members.discard(session.id)
            if not members:
                del self._rooms[room]

    def remove_identity_from_room(self, identity: int, room: str) -> int:
        removed = 0
        for session_id in list(self._by_identity.get(identity, ())):
            session = self._sessions[session_id]
            if room in session.rooms:
                self._leave(session, room)
                removed += 1
        return removed

    def room_members(self, room: str) -> frozenset[int]:
        return frozenset(self._sessions[sid].identity for sid in self._rooms.get(room, ()))

    # -- presence ------------------------------------------------------------

    def list_online(self) -> frozenset[int]:
        return frozenset(self._by_identity)

    def sessions_for(self, identity: int) -> list[Session]:
        return [self._sessions[sid] for sid in self._by_identity.get(identity, ())]

    async def _publish_presence(self) -> None:
        online = sorted(self.list_online())
        await self._deliver(
            list(self._sessions),
            WsOutbound(type=OutboundEvent.PRESENCE_UPDATE, data={"online": online}),
        )

    # -- delivery ------------------------------------------------------------

    async def broadcast(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """Send to every session in the room. An empty room is a no-op."""
        return await self.broadcast_to_rooms([room], event, payload)

    async def broadcast_to_rooms(
        self,
        rooms: Iterable[str],
        event: str,
        payload: dict[str, Any],
    ) -> int:
        """Send once per session across all rooms, in first-seen order."""
        targets: dict[str, None] = {}
        for room in rooms:
            for session_id in self._rooms.get(room, ()):
                targets.setdefault(session_id)
        if not targets:
            logger.debug("No live sessions for %s", event)
            return 0
        return await self._deliver(list(targets), WsOutbound(type=event, data=payload))

    async def _deliver(self, session_ids: list[str], envelope: WsOutbound) -> int:
        raw = envelope.model_dump_json()
        delivered = 0
        dead: list[Session] = []
        for session_id in session_ids:
            # Sessions can leave while earlier sends are awaited.
            session = self._sessions.get(session_id)
            if session is None:
                continue
            try:
                await session.transport.send(envelope, raw)
                delivered += 1
            except Exception:
                logger.debug("Send to session %s failed", session_id, exc_info=True)
                dead.append(session)
        if dead:
            dropped = [s for s in dead if self._drop(s)]
            if dropped:
                logger.info("Dropped %d dead sessions", len(dropped))
                await self._publish_presence()
        return delivered
