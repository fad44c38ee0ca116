from __future__ import annotations

from pydantic import BaseModel

from chat_realtime.domain.value_objects.enums import PairState, RelationshipRole


class UserTargetRequest(BaseModel):
    user_id: int


class CancelRequest(BaseModel):
    user_id: int
    role: RelationshipRole


class PairStateResponse(BaseModel):
    user_id: int
    state: PairState


class RelationshipResponse(BaseModel):
    identity: int
    friends: list[int]
    sent: list[int]
    received: list[int]
