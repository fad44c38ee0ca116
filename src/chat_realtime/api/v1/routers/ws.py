from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from chat_realtime.api.deps import get_verifier
from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.notifications.aggregator import NotificationAggregator
from chat_realtime.config import settings
from chat_realtime.domain.value_objects.enums import NotificationKind, OutboundEvent
from chat_realtime.domain.value_objects.rooms import group_room
from chat_realtime.infrastructure.ws.protocol import WsInbound
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry, Session
from chat_realtime.infrastructure.ws.session import ClientConnection
from chat_realtime.services import group_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


def _new_aggregator(identity: int) -> NotificationAggregator:
    return NotificationAggregator(
        identity,
        visible_for=settings.NOTIFICATION_VISIBLE_SECONDS,
        retire_for=settings.NOTIFICATION_RETIRE_SECONDS,
        history_limit=settings.NOTIFICATION_HISTORY_LIMIT,
        dedup_window=settings.NOTIFICATION_DEDUP_WINDOW,
    )


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()
    registry: ConnectionRegistry = websocket.app.state.registry
    conn = ClientConnection(websocket, _new_aggregator(principal.identity))
    conn.start()
    session = await registry.connect(principal.identity, conn)
    assert session is not None

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{principal.identity}",
    )
    try:
        await _read_loop(websocket, conn, registry, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.identity)
    finally:
        heartbeat_task.cancel()
        await conn.stop()
        await registry.disconnect(session)


async def _heartbeat(conn: ClientConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.send_event(OutboundEvent.PONG)
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(
    ws: WebSocket,
    conn: ClientConnection,
    registry: ConnectionRegistry,
    session: Session,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await conn.send_event(OutboundEvent.ERROR, {"code": "invalid_payload"})
            continue

        try:
            if msg.type == "ping":
                await conn.send_event(OutboundEvent.PONG)

            elif msg.type == "join-group":
                await _join_group(ws, conn, registry, session, UUID(msg.data["group_id"]))

            elif msg.type == "leave-group":
                registry.leave_room(session, group_room(UUID(msg.data["group_id"])))

            elif msg.type == "open-conversation":
                await conn.open_conversation(NotificationKind(msg.data["kind"]), msg.data["id"])

            elif msg.type == "close-conversation":
                await conn.close_conversation()

            elif msg.type == "dismiss-notification":
                await conn.dismiss()

            elif msg.type == "set-notification-preferences":
                await conn.set_preferences(
                    sound_enabled=_optional_flag(msg.data, "sound"),
                    badge_enabled=_optional_flag(msg.data, "badge"),
                )

            else:
                await conn.send_event(OutboundEvent.ERROR, {"code": "unknown_type", "type": msg.type})
        except (KeyError, ValueError) as exc:
            await conn.send_event(OutboundEvent.ERROR, {"code": "invalid_data", "detail": str(exc)})


async def _join_group(
    ws: WebSocket,
    conn: ClientConnection,
    registry: ConnectionRegistry,
    session: Session,
    group_id: UUID,
) -> None:
    async with ws.app.state.uow_factory() as uow:
        allowed = await group_service.is_member(group_id, session.identity, uow)
    if not allowed:
        await conn.send_event(OutboundEvent.ERROR, {"code": "not_a_member", "group_id": str(group_id)})
        return
    registry.join_room(session, group_room(group_id))


def _optional_flag(data: dict, name: str) -> bool | None:
    value = data.get(name)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean")
    return value
