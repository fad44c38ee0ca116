from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from chat_realtime.domain.value_objects.enums import EdgeStatus


def ordered_pair(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)


@dataclass(frozen=True, slots=True)
class RelationshipEdge:
    """A single relationship fact between two identities.

    Stored once per unordered pair, so both parties always read the same fact.
    """

    user_low: int
    user_high: int
    status: str
    requester_id: int | None
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        if self.user_low >= self.user_high:
            raise ValueError(f"Invalid pair ({self.user_low}, {self.user_high})")
        if self.status == EdgeStatus.PENDING and self.requester_id not in (self.user_low, self.user_high):
            raise ValueError("Pending edge requires a requester from the pair")

    @property
    def pair(self) -> tuple[int, int]:
        return self.user_low, self.user_high

    def involves(self, identity: int) -> bool:
        return identity in (self.user_low, self.user_high)

    def other(self, identity: int) -> int:
        if identity == self.user_low:
            return self.user_high
        if identity == self.user_high:
            return self.user_low
        raise ValueError(f"{identity} is not part of edge {self.pair}")


@dataclass(frozen=True, slots=True)
class RelationshipRecord:
    """Per-identity view: friends, outgoing and incoming requests."""

    identity: int
    friends: frozenset[int] = field(default_factory=frozenset)
    sent: frozenset[int] = field(default_factory=frozenset)
    received: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def from_edges(cls, identity: int, edges: Iterable[RelationshipEdge]) -> RelationshipRecord:
        friends: set[int] = set()
        sent: set[int] = set()
        received: set[int] = set()
        for edge in edges:
            other = edge.other(identity)
            if edge.status == EdgeStatus.FRIENDS:
                friends.add(other)
            elif edge.requester_id == identity:
                sent.add(other)
            else:
                received.add(other)
        return cls(
            identity=identity,
            friends=frozenset(friends),
            sent=frozenset(sent),
            received=frozenset(received),
        )

    def violations(self) -> list[str]:
        problems: list[str] = []
        for name, members in (("friends", self.friends), ("sent", self.sent), ("received", self.received)):
            if self.identity in members:
                problems.append(f"{self.identity} listed in own {name}")
        if self.friends & self.sent:
            problems.append("friends and sent overlap")
        if self.friends & self.received:
            problems.append("friends and received overlap")
        if self.sent & self.received:
            problems.append("sent and received overlap")
        return problems
