from __future__ import annotations

from fastapi import APIRouter, Query

from chat_realtime.api.deps import CurrentPrincipal, UoWDep
from chat_realtime.api.v1.schemas.relationship import (
    CancelRequest,
    PairStateResponse,
    RelationshipResponse,
    UserTargetRequest,
)
from chat_realtime.domain.value_objects.enums import RequestDirection
from chat_realtime.services import relationship_service

router = APIRouter(prefix="/api/v1/chat/relationships", tags=["relationships"])


@router.get("", response_model=RelationshipResponse)
async def get_relationship(principal: CurrentPrincipal, uow: UoWDep) -> RelationshipResponse:
    record = await relationship_service.get_relationship(principal.identity, uow)
    return RelationshipResponse(
        identity=record.identity,
        friends=sorted(record.friends),
        sent=sorted(record.sent),
        received=sorted(record.received),
    )


@router.get("/friends", response_model=list[int])
async def list_friends(principal: CurrentPrincipal, uow: UoWDep) -> list[int]:
    return await relationship_service.list_friends(principal.identity, uow)


@router.get("/requests", response_model=list[int])
async def list_requests(
    principal: CurrentPrincipal,
    uow: UoWDep,
    direction: RequestDirection = Query(RequestDirection.RECEIVED),
) -> list[int]:
    return await relationship_service.list_requests(principal.identity, direction, uow)


@router.post("/requests", response_model=PairStateResponse)
async def send_request(
    body: UserTargetRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> PairStateResponse:
    state = await relationship_service.send_request(principal, body.user_id, uow)
    return PairStateResponse(user_id=body.user_id, state=state)


@router.post("/requests/accept", response_model=PairStateResponse)
async def accept_request(
    body: UserTargetRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> PairStateResponse:
    state = await relationship_service.accept_request(principal, body.user_id, uow)
    return PairStateResponse(user_id=body.user_id, state=state)


@router.post("/cancel", response_model=PairStateResponse)
async def cancel_or_reject(
    body: CancelRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> PairStateResponse:
    state = await relationship_service.cancel_or_reject(principal, body.user_id, body.role, uow)
    return PairStateResponse(user_id=body.user_id, state=state)


@router.get("/{user_id}", response_model=PairStateResponse)
async def get_pair_state(user_id: int, principal: CurrentPrincipal, uow: UoWDep) -> PairStateResponse:
    state = await relationship_service.get_pair_state(principal.identity, user_id, uow)
    return PairStateResponse(user_id=user_id, state=state)
