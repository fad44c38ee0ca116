from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Group:
    id: UUID
    name: str
    creator_id: int
    members: tuple[int, ...]
    group_pic: str
    created_at: datetime
    updated_at: datetime

    def has_member(self, identity: int) -> bool:
        return identity in self.members

    def with_members(self, identities: list[int], now: datetime) -> tuple[Group, list[int]]:
        """Append identities not yet in the group. Returns (group, added)."""
        added: list[int] = []
        for identity in identities:
            if identity not in self.members and identity not in added:
                added.append(identity)
        if not added:
            return self, []
        return replace(self, members=self.members + tuple(added), updated_at=now), added

    def without_member(self, identity: int, now: datetime) -> Group | None:
        """Drop a member, handing the group to the next member if the creator leaves.

        Returns None when the group is left without members.
        """
        remaining = tuple(m for m in self.members if m != identity)
        if not remaining:
            return None
        creator_id = self.creator_id
        if creator_id == identity:
            creator_id = remaining[0]
        return replace(self, members=remaining, creator_id=creator_id, updated_at=now)
