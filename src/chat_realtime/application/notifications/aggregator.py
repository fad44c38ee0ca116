"""Per-viewer notification aggregation.

Turns incoming private/group message events into unread counters and a
queue of notifications shown one at a time. The display is a small state
machine driven by explicit calls, never by timers of its own:

    idle --offer--> showing --dismiss/timeout--> retiring --timeout--> idle

`advance()` must be called at (or after) `next_deadline()`; the caller owns
the scheduling.
"""
from __future__ import annotations

import logging
from collections import OrderedDict, deque
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from typing import Any, NamedTuple
from uuid import UUID

from chat_realtime.application.ports.clock import Clock, SystemClock
from chat_realtime.domain.value_objects.enums import NotificationKind, OutboundEvent

logger = logging.getLogger(__name__)


class DisplayState(StrEnum):
    IDLE = "idle"
    SHOWING = "showing"
    RETIRING = "retiring"


class Admission(StrEnum):
    ADMITTED = "admitted"
    SUPPRESSED = "suppressed"
    DUPLICATE = "duplicate"


class ConversationKey(NamedTuple):
    kind: NotificationKind
    conversation_id: str

    @classmethod
    def of(cls, kind: NotificationKind | str, conversation_id: object) -> ConversationKey:
        """Canonical key: group ids as lowercase hyphenated UUIDs, user ids as ints."""
        kind = NotificationKind(kind)
        if kind == NotificationKind.GROUP:
            return cls(kind, str(UUID(str(conversation_id))))
        return cls(kind, str(int(str(conversation_id))))


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    id: str
    kind: NotificationKind
    source_user: int
    group_id: str | None
    text: str | None
    image_ref: str | None
    created_at: datetime

    @property
    def conversation(self) -> ConversationKey:
        if self.kind == NotificationKind.GROUP:
            assert self.group_id is not None
            return ConversationKey.of(self.kind, self.group_id)
        return ConversationKey(self.kind, str(self.source_user))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "source_user": self.source_user,
            "group_id": self.group_id,
            "text": self.text,
            "image_ref": self.image_ref,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_outbound(cls, event: str, data: dict[str, Any]) -> NotificationEvent | None:
        """Build from a private-message/group-message payload; None for other events."""
        if event == OutboundEvent.PRIVATE_MESSAGE:
            kind = NotificationKind.PRIVATE
        elif event == OutboundEvent.GROUP_MESSAGE:
            kind = NotificationKind.GROUP
        else:
            return None
        message = data["message"]
        return cls(
            id=str(message["id"]),
            kind=kind,
            source_user=int(message["sender_id"]),
            group_id=str(message["group_id"]) if kind == NotificationKind.GROUP else None,
            text=message.get("text"),
            image_ref=message.get("image_ref"),
            created_at=datetime.fromisoformat(message["created_at"]),
        )


@dataclass(frozen=True, slots=True)
class NotificationPreferences:
    sound_enabled: bool = False
    badge_enabled: bool = True


class NotificationAggregator:
    def __init__(
        self,
        viewer: int,
        *,
        visible_for: float = 5.0,
        retire_for: float = 0.3,
        history_limit: int = 20,
        dedup_window: int = 500,
        preferences: NotificationPreferences | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.viewer = viewer
        self.preferences = preferences or NotificationPreferences()
        self._visible_for = visible_for
        self._retire_for = retire_for
        self._dedup_window = dedup_window
        self._clock = clock or SystemClock()

        self._open: ConversationKey | None = None
        self._unread: dict[ConversationKey, int] = {}
        self._queue: deque[NotificationEvent] = deque()
        self._displayed: NotificationEvent | None = None
        self._state = DisplayState.IDLE
        self._deadline: float | None = None
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._history: deque[NotificationEvent] = deque(maxlen=history_limit)

    # -- read side -----------------------------------------------------------

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def displayed(self) -> NotificationEvent | None:
        return self._displayed

    @property
    def queued(self) -> tuple[NotificationEvent, ...]:
        return tuple(self._queue)

    @property
    def history(self) -> tuple[NotificationEvent, ...]:
        return tuple(self._history)

    @property
    def open_conversation_key(self) -> ConversationKey | None:
        return self._open

    def unread_count(self, kind: NotificationKind, conversation_id: object) -> int:
        return self._unread.get(ConversationKey.of(kind, conversation_id), 0)

    @property
    def total_unread(self) -> int:
        return sum(self._unread.values())

    def next_deadline(self) -> float | None:
        return self._deadline

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self._state,
            "displayed": self._displayed.to_dict() if self._displayed else None,
            "queued": len(self._queue),
            "unread": [
                {"kind": key.kind, "id": key.conversation_id, "count": count}
                for key, count in self._unread.items()
            ],
            "total_unread": self.total_unread,
            "sound": self.preferences.sound_enabled,
            "badge": self.preferences.badge_enabled,
        }

    # -- input ---------------------------------------------------------------

    def offer(self, event: NotificationEvent) -> Admission:
        if event.conversation == self._open:
            return Admission.SUPPRESSED
        if self._is_duplicate(event.id):
            logger.debug("Duplicate notification %s dropped", event.id)
            return Admission.DUPLICATE

        self._remember(event.id)
        key = event.conversation
        self._unread[key] = self._unread.get(key, 0) + 1
        self._history.appendleft(event)
        self._queue.append(event)
        if self._state == DisplayState.IDLE:
            self._show_next(self._clock.monotonic())
        return Admission.ADMITTED

    def open_conversation(self, kind: NotificationKind, conversation_id: object) -> None:
        """The viewer is now looking at this conversation."""
        key = ConversationKey.of(kind, conversation_id)
        self._open = key
        self._unread.pop(key, None)
        self._queue = deque(e for e in self._queue if e.conversation != key)
        self._history = deque(
            (e for e in self._history if e.conversation != key),
            maxlen=self._history.maxlen,
        )
        if self._displayed is not None and self._displayed.conversation == key:
            self._displayed = None
            self._state = DisplayState.IDLE
            self._deadline = None
            self._show_next(self._clock.monotonic())

    def close_conversation(self) -> None:
        self._open = None

    def set_preferences(
        self,
        *,
        sound_enabled: bool | None = None,
        badge_enabled: bool | None = None,
    ) -> NotificationPreferences:
        """Update the flags echoed in snapshots; None leaves a flag as is."""
        changes = {
            name: value
            for name, value in (("sound_enabled", sound_enabled), ("badge_enabled", badge_enabled))
            if value is not None
        }
        self.preferences = replace(self.preferences, **changes)
        return self.preferences

    def dismiss(self) -> bool:
        if self._state != DisplayState.SHOWING:
            return False
        self._retire(self._clock.monotonic())
        return True

    def advance(self, now: float | None = None) -> bool:
        """Apply every timeout due at `now`. Returns True if the display changed."""
        now = self._clock.monotonic() if now is None else now
        changed = False
        while self._deadline is not None and now >= self._deadline:
            expired = self._deadline
            if self._state == DisplayState.SHOWING:
                self._retire(expired)
            else:
                self._displayed = None
                self._state = DisplayState.IDLE
                self._deadline = None
                self._show_next(expired)
            changed = True
        return changed

    # -- internals -----------------------------------------------------------

    def _is_duplicate(self, event_id: str) -> bool:
        if event_id in self._seen:
            return True
        if self._displayed is not None and self._displayed.id == event_id:
            return True
        return any(e.id == event_id for e in self._queue)

    def _remember(self, event_id: str) -> None:
        self._seen[event_id] = None
        while len(self._seen) > self._dedup_window:
            self._seen.popitem(last=False)

    def _show_next(self, at: float) -> None:
        if not self._queue:
            return
        self._displayed = self._queue.popleft()
        self._state = DisplayState.SHOWING
        self._deadline = at + self._visible_for

    def _retire(self, at: float) -> None:
        self._state = DisplayState.RETIRING
        self._deadline = at + self._retire_for
