from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from chat_realtime.api.deps import CurrentPrincipal, UoWDep
from chat_realtime.api.v1.schemas.common import PaginatedResponse
from chat_realtime.api.v1.schemas.message import MessageResponse, SendMessageRequest
from chat_realtime.domain.entities.message import Message
from chat_realtime.infrastructure.db.repositories._cursor import encode_cursor
from chat_realtime.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


def _page(messages: list[Message], limit: int) -> PaginatedResponse[MessageResponse]:
    next_cursor = None
    if len(messages) == limit:
        last = messages[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m, from_attributes=True) for m in messages],
        next_cursor=next_cursor,
    )


@router.get("/messages/users/{user_id}", response_model=PaginatedResponse[MessageResponse])
async def list_private_messages(
    user_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_private_messages(principal, user_id, cursor, limit, uow)
    return _page(messages, limit)


@router.post("/messages/users/{user_id}", response_model=MessageResponse, status_code=201)
async def send_private_message(
    user_id: int,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> MessageResponse:
    msg, created = await message_service.send_private_message(principal, user_id, body.to_dto(), uow)
    if not created:
        response.status_code = 200
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.get("/groups/{group_id}/messages", response_model=PaginatedResponse[MessageResponse])
async def list_group_messages(
    group_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_group_messages(principal, group_id, cursor, limit, uow)
    return _page(messages, limit)


@router.post("/groups/{group_id}/messages", response_model=MessageResponse, status_code=201)
async def send_group_message(
    group_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> MessageResponse:
    msg, created = await message_service.send_group_message(principal, group_id, body.to_dto(), uow)
    if not created:
        response.status_code = 200
    return MessageResponse.model_validate(msg, from_attributes=True)
