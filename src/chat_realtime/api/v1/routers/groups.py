from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from chat_realtime.api.deps import CurrentPrincipal, UoWDep
from chat_realtime.api.v1.schemas.group import (
    AddMembersRequest,
    CreateGroupRequest,
    GroupResponse,
    LeaveGroupResponse,
)
from chat_realtime.services import group_service

router = APIRouter(prefix="/api/v1/chat/groups", tags=["groups"])


@router.get("", response_model=list[GroupResponse])
async def list_groups(principal: CurrentPrincipal, uow: UoWDep) -> list[GroupResponse]:
    groups = await group_service.list_user_groups(principal, uow)
    return [GroupResponse.model_validate(g, from_attributes=True) for g in groups]


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    body: CreateGroupRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> GroupResponse:
    group = await group_service.create_group(
        principal, body.name, body.member_ids, body.group_pic, uow,
    )
    return GroupResponse.model_validate(group, from_attributes=True)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group_id: UUID, principal: CurrentPrincipal, uow: UoWDep) -> GroupResponse:
    group = await group_service.get_group(group_id, principal, uow)
    return GroupResponse.model_validate(group, from_attributes=True)


@router.post("/{group_id}/members", response_model=GroupResponse)
async def add_members(
    group_id: UUID,
    body: AddMembersRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> GroupResponse:
    group = await group_service.add_members(group_id, principal, body.member_ids, uow)
    return GroupResponse.model_validate(group, from_attributes=True)


@router.delete("/{group_id}/members/{user_id}", response_model=GroupResponse)
async def remove_member(
    group_id: UUID,
    user_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> GroupResponse:
    group = await group_service.remove_member(group_id, principal, user_id, uow)
    return GroupResponse.model_validate(group, from_attributes=True)


@router.post("/{group_id}/leave", response_model=LeaveGroupResponse)
async def leave_group(group_id: UUID, principal: CurrentPrincipal, uow: UoWDep) -> LeaveGroupResponse:
    group = await group_service.leave_group(group_id, principal, uow)
    return LeaveGroupResponse(
        group_id=group_id,
        disbanded=group is None,
        group=GroupResponse.model_validate(group, from_attributes=True) if group else None,
    )
