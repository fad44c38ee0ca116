from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.group import Group
from chat_realtime.infrastructure.db.mappers import group as mapper
from chat_realtime.infrastructure.db.models.group import GroupMemberModel, GroupModel


class GroupReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, group_id: UUID, *, for_update: bool = False) -> Group | None:
        stmt = select(GroupModel).where(GroupModel.id == group_id)
        if for_update:
            stmt = stmt.with_for_update(of=GroupModel)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_member(self, identity: int) -> list[Group]:
        stmt = (
            select(GroupModel)
            .join(GroupMemberModel, GroupMemberModel.group_id == GroupModel.id)
            .where(GroupMemberModel.member_id == identity)
            .order_by(GroupModel.updated_at.desc(), GroupModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class GroupWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, group: Group) -> Group:
        model = mapper.entity_to_model(group)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def save(self, group: Group) -> None:
        model = await self._session.get(GroupModel, group.id)
        if model is None:
            raise LookupError(f"Group {group.id} vanished during update")
        model.creator_id = group.creator_id
        model.name = group.name
        model.group_pic = group.group_pic
        model.updated_at = group.updated_at

        positions = {member_id: position for position, member_id in enumerate(group.members)}
        for member in list(model.members):
            if member.member_id not in positions:
                model.members.remove(member)
            else:
                member.position = positions.pop(member.member_id)
        for member_id, position in positions.items():
            model.members.append(
                GroupMemberModel(group_id=group.id, member_id=member_id, position=position)
            )
        await self._session.flush()

    async def delete(self, group_id: UUID) -> None:
        await self._session.execute(delete(GroupModel).where(GroupModel.id == group_id))
