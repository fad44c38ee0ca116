from __future__ import annotations

from chat_realtime.domain.entities.group import Group
from chat_realtime.infrastructure.db.models.group import GroupMemberModel, GroupModel


def model_to_entity(model: GroupModel) -> Group:
    return Group(
        id=model.id,
        name=model.name,
        creator_id=model.creator_id,
        members=tuple(m.member_id for m in model.members),
        group_pic=model.group_pic,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Group) -> GroupModel:
    return GroupModel(
        id=entity.id,
        name=entity.name,
        creator_id=entity.creator_id,
        group_pic=entity.group_pic,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        members=[
            GroupMemberModel(group_id=entity.id, member_id=member_id, position=position)
            for position, member_id in enumerate(entity.members)
        ],
    )
