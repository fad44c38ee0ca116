"""Integration smoke tests for the REST and WebSocket API (mocked UoW via dependency override)."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chat_realtime.api.deps import get_uow
from chat_realtime.app import create_app
from chat_realtime.config import settings
from chat_realtime.domain.value_objects.enums import OutboxEventType
from chat_realtime.domain.value_objects.rooms import group_room
from tests.conftest import ALICE, BOB, CAROL, DAVE, FakeUoW, make_group


def _make_token(sub: int = ALICE, roles: list | None = None) -> str:
    return jwt.encode(
        {"sub": str(sub), "roles": roles or []},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(sub: int = ALICE) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub)}"}


@pytest.fixture
def app_with_uow():
    app = create_app()
    uow = FakeUoW()

    async def _override():
        yield uow

    @asynccontextmanager
    async def _uow_factory():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.state.uow_factory = _uow_factory
    return app, uow


@pytest.fixture
def client(app_with_uow):
    app, _ = app_with_uow
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def uow(app_with_uow):
    _, uow = app_with_uow
    return uow


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "online": 0}
    assert resp.headers["X-Request-ID"]


def test_unauthorized_returns_error(client):
    resp = client.get("/api/v1/chat/relationships")
    assert resp.status_code in (401, 403)


def test_friend_request_flow(client):
    resp = client.post("/api/v1/chat/relationships/requests", headers=_auth(ALICE), json={"user_id": BOB})
    assert resp.status_code == 200
    assert resp.json()["state"] == "request_sent_by_a"

    resp = client.get("/api/v1/chat/relationships/requests?direction=received", headers=_auth(BOB))
    assert resp.json() == [ALICE]

    resp = client.post("/api/v1/chat/relationships/requests/accept", headers=_auth(BOB), json={"user_id": ALICE})
    assert resp.json()["state"] == "friends"

    resp = client.get("/api/v1/chat/relationships", headers=_auth(ALICE))
    assert resp.json() == {"identity": ALICE, "friends": [BOB], "sent": [], "received": []}

    resp = client.get(f"/api/v1/chat/relationships/{BOB}", headers=_auth(ALICE))
    assert resp.json()["state"] == "friends"


def test_relationship_validation_errors(client):
    resp = client.post("/api/v1/chat/relationships/requests", headers=_auth(ALICE), json={"user_id": ALICE})
    assert resp.status_code == 422

    resp = client.post(
        "/api/v1/chat/relationships/cancel",
        headers=_auth(ALICE),
        json={"user_id": BOB, "role": "friend"},
    )
    assert resp.status_code == 422


def test_send_and_list_private_messages(client, uow):
    client_msg_id = str(uuid.uuid4())
    body = {"client_msg_id": client_msg_id, "text": "hello world"}

    resp = client.post(f"/api/v1/chat/messages/users/{BOB}", headers=_auth(ALICE), json=body)
    assert resp.status_code == 201
    assert resp.json()["text"] == "hello world"
    assert resp.json()["recipient_id"] == BOB

    resp = client.post(f"/api/v1/chat/messages/users/{BOB}", headers=_auth(ALICE), json=body)
    assert resp.status_code == 200
    assert uow.outbox.types() == [OutboxEventType.MESSAGE_CREATED]

    resp = client.get(f"/api/v1/chat/messages/users/{ALICE}", headers=_auth(BOB))
    page = resp.json()
    assert [m["text"] for m in page["items"]] == ["hello world"]
    assert page["next_cursor"] is None


def test_empty_message_rejected(client):
    resp = client.post(
        f"/api/v1/chat/messages/users/{BOB}",
        headers=_auth(ALICE),
        json={"client_msg_id": str(uuid.uuid4())},
    )
    assert resp.status_code == 422


def test_group_lifecycle(client, uow):
    resp = client.post(
        "/api/v1/chat/groups",
        headers=_auth(ALICE),
        json={"name": "crew", "member_ids": [BOB, CAROL]},
    )
    assert resp.status_code == 201
    group = resp.json()
    assert group["creator_id"] == ALICE
    assert set(group["members"]) == {ALICE, BOB, CAROL}

    resp = client.get(f"/api/v1/chat/groups/{group['id']}", headers=_auth(DAVE))
    assert resp.status_code == 403

    resp = client.post(
        f"/api/v1/chat/groups/{group['id']}/messages",
        headers=_auth(BOB),
        json={"client_msg_id": str(uuid.uuid4()), "text": "hi all"},
    )
    assert resp.status_code == 201

    resp = client.delete(f"/api/v1/chat/groups/{group['id']}/members/{CAROL}", headers=_auth(BOB))
    assert resp.status_code == 403

    resp = client.post(f"/api/v1/chat/groups/{group['id']}/leave", headers=_auth(ALICE))
    data = resp.json()
    assert data["disbanded"] is False
    assert data["group"]["creator_id"] == BOB
    assert ALICE not in data["group"]["members"]


def test_unknown_group_returns_404(client):
    resp = client.get(f"/api/v1/chat/groups/{uuid.uuid4()}", headers=_auth(ALICE))
    assert resp.status_code == 404


def test_websocket_presence_and_group_join(app_with_uow, client):
    app, uow = app_with_uow
    group = make_group(members=(ALICE, BOB))
    uow.groups._store[group.id] = group

    with client.websocket_connect(f"/ws/chat?token={_make_token(ALICE)}") as ws:
        frame = ws.receive_json()
        assert frame == {"type": "presence-update", "data": {"online": [ALICE]}}

        ws.send_json({"type": "join-group", "data": {"group_id": str(group.id)}})
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"
        assert app.state.registry.room_members(group_room(group.id)) == {ALICE}

        ws.send_json({"type": "join-group", "data": {"group_id": str(uuid.uuid4())}})
        assert ws.receive_json()["data"]["code"] == "not_a_member"

        ws.send_json({"type": "bogus"})
        assert ws.receive_json()["data"]["code"] == "unknown_type"


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/chat?token=garbage") as ws:
            ws.receive_json()


def test_websocket_notification_preferences(client):
    with client.websocket_connect(f"/ws/chat?token={_make_token(ALICE)}") as ws:
        assert ws.receive_json()["type"] == "presence-update"

        ws.send_json({"type": "set-notification-preferences", "data": {"sound": True}})
        frame = ws.receive_json()
        assert frame["type"] == "notifications"
        assert frame["data"]["sound"] is True
        assert frame["data"]["badge"] is True

        ws.send_json({"type": "set-notification-preferences", "data": {"badge": "off"}})
        assert ws.receive_json()["data"]["code"] == "invalid_data"

        ws.send_json({"type": "open-conversation", "data": {"kind": "group", "id": "nope"}})
        assert ws.receive_json()["data"]["code"] == "invalid_data"
