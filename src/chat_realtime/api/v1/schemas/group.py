from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CreateGroupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    member_ids: list[int] = Field(..., min_length=1)
    group_pic: str | None = None


class AddMembersRequest(BaseModel):
    member_ids: list[int] = Field(..., min_length=1)


class GroupResponse(BaseModel):
    id: UUID
    name: str
    creator_id: int
    members: list[int]
    group_pic: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LeaveGroupResponse(BaseModel):
    group_id: UUID
    disbanded: bool
    group: GroupResponse | None = None
