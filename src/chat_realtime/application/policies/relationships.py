"""Friendship state machine over a single edge per unordered pair.

Every function takes the current edge of the pair (or None) and returns the
edge that should replace it (None meaning "no relationship"). Nothing is
written here; callers persist the result in one transaction.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from chat_realtime.application.exceptions import ValidationError
from chat_realtime.domain.entities.relationship import RelationshipEdge, ordered_pair
from chat_realtime.domain.value_objects.enums import EdgeStatus, PairState, RelationshipRole


@dataclass(frozen=True, slots=True)
class Transition:
    before: RelationshipEdge | None
    after: RelationshipEdge | None
    state: PairState


def pair_state(edge: RelationshipEdge | None, actor: int) -> PairState:
    if edge is None:
        return PairState.NONE
    if edge.status == EdgeStatus.FRIENDS:
        return PairState.FRIENDS
    if edge.requester_id == actor:
        return PairState.REQUEST_SENT_BY_A
    return PairState.REQUEST_SENT_BY_B


def _check_pair(actor: int, other: int, edge: RelationshipEdge | None) -> None:
    if actor == other:
        raise ValidationError("Cannot target yourself")
    if edge is not None and edge.pair != ordered_pair(actor, other):
        raise ValueError("Edge does not belong to this pair")


def _friends(edge: RelationshipEdge, now: datetime) -> RelationshipEdge:
    return replace(edge, status=EdgeStatus.FRIENDS, requester_id=None, updated_at=now)


def send_request(
    edge: RelationshipEdge | None,
    actor: int,
    other: int,
    now: datetime,
) -> Transition:
    _check_pair(actor, other, edge)
    state = pair_state(edge, actor)
    if state == PairState.FRIENDS:
        raise ValidationError("Already friends")
    if state == PairState.REQUEST_SENT_BY_A:
        raise ValidationError("Friend request already sent")
    if state == PairState.REQUEST_SENT_BY_B:
        # The other side already asked: requesting back is an acceptance.
        assert edge is not None
        return Transition(edge, _friends(edge, now), PairState.FRIENDS)

    low, high = ordered_pair(actor, other)
    created = RelationshipEdge(
        user_low=low,
        user_high=high,
        status=EdgeStatus.PENDING,
        requester_id=actor,
        created_at=now,
        updated_at=now,
    )
    return Transition(None, created, PairState.REQUEST_SENT_BY_A)


def accept_request(
    edge: RelationshipEdge | None,
    actor: int,
    other: int,
    now: datetime,
) -> Transition:
    """actor accepts the pending request that other sent."""
    _check_pair(actor, other, edge)
    if pair_state(edge, actor) != PairState.REQUEST_SENT_BY_B:
        raise ValidationError("No pending friend request from this user")
    assert edge is not None
    return Transition(edge, _friends(edge, now), PairState.FRIENDS)


_ROLE_STATES = {
    RelationshipRole.SENT: (PairState.REQUEST_SENT_BY_A, "No friend request was sent to this user"),
    RelationshipRole.RECEIVED: (PairState.REQUEST_SENT_BY_B, "No friend request was received from this user"),
    RelationshipRole.FRIEND: (PairState.FRIENDS, "This user is not a friend"),
}


def cancel_or_reject(
    edge: RelationshipEdge | None,
    actor: int,
    other: int,
    role: RelationshipRole,
) -> Transition:
    """Cancel an outgoing request, reject an incoming one, or unfriend."""
    _check_pair(actor, other, edge)
    expected, message = _ROLE_STATES[RelationshipRole(role)]
    if pair_state(edge, actor) != expected:
        raise ValidationError(message)
    return Transition(edge, None, PairState.NONE)
