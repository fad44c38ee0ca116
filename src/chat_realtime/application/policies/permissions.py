from __future__ import annotations

from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import ForbiddenError, NotFoundError
from chat_realtime.domain.entities.group import Group


def assert_group_member(principal: Principal, group: Group | None) -> Group:
    """Raise if the group doesn't exist or principal is not a member."""
    if group is None:
        raise NotFoundError("Group not found")
    if not group.has_member(principal.identity):
        raise ForbiddenError("Not a member of this group")
    return group


def assert_group_creator(principal: Principal, group: Group) -> None:
    if group.creator_id != principal.identity:
        raise ForbiddenError("Only the group creator can do this")
