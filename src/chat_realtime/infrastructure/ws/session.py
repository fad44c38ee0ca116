"""WebSocket transport that also drives the viewer's notification aggregator."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from chat_realtime.application.notifications.aggregator import (
    Admission,
    NotificationAggregator,
    NotificationEvent,
)
from chat_realtime.application.ports.clock import Clock, SystemClock
from chat_realtime.domain.value_objects.enums import NotificationKind, OutboundEvent
from chat_realtime.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ClientConnection:
    """One accepted WebSocket.

    Every frame is forwarded as-is; message events are also offered to the
    aggregator, and each display change is pushed as a `notifications` frame.
    A timer task applies the aggregator's deadlines.
    """

    def __init__(
        self,
        websocket: WebSocket,
        aggregator: NotificationAggregator,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._ws = websocket
        self.aggregator = aggregator
        self._clock = clock or SystemClock()
        self._send_lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._timer: asyncio.Task[None] | None = None

    # -- Transport -----------------------------------------------------------

    async def send(self, envelope: WsOutbound, raw: str) -> None:
        await self._send_text(raw)
        event = NotificationEvent.from_outbound(envelope.type, envelope.data)
        if event is None or event.source_user == self.aggregator.viewer:
            return
        if self.aggregator.offer(event) == Admission.ADMITTED:
            await self.push_notifications()

    # -- client commands -----------------------------------------------------

    async def send_event(self, event: str, data: dict[str, Any] | None = None) -> None:
        await self._send_text(WsOutbound(type=event, data=data or {}).model_dump_json())

    async def push_notifications(self) -> None:
        await self.send_event(OutboundEvent.NOTIFICATIONS, self.aggregator.snapshot())
        self._wakeup.set()

    async def open_conversation(self, kind: NotificationKind, conversation_id: object) -> None:
        self.aggregator.open_conversation(kind, conversation_id)
        await self.push_notifications()

    async def close_conversation(self) -> None:
        self.aggregator.close_conversation()

    async def set_preferences(
        self,
        *,
        sound_enabled: bool | None = None,
        badge_enabled: bool | None = None,
    ) -> None:
        self.aggregator.set_preferences(sound_enabled=sound_enabled, badge_enabled=badge_enabled)
        await self.push_notifications()

    async def dismiss(self) -> None:
        if self.aggregator.dismiss():
            await self.push_notifications()

    # -- timer ---------------------------------------------------------------

    def start(self) -> None:
        self._timer = asyncio.create_task(self._run_timer(), name="ws-notification-timer")

    async def stop(self) -> None:
        if self._timer:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

    async def _run_timer(self) -> None:
        while True:
            deadline = self.aggregator.next_deadline()
            timeout = None if deadline is None else max(0.0, deadline - self._clock.monotonic())
            self._wakeup.clear()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout)
                continue
            except asyncio.TimeoutError:
                pass
            if self.aggregator.advance():
                try:
                    await self.send_event(OutboundEvent.NOTIFICATIONS, self.aggregator.snapshot())
                except Exception:
                    logger.debug("Notification push failed, stopping timer", exc_info=True)
                    return

    async def _send_text(self, raw: str) -> None:
        async with self._send_lock:
            await self._ws.send_text(raw)
