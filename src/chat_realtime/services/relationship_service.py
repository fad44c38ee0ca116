from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from chat_realtime.application.dto.principal import Principal
from chat_realtime.application.exceptions import IntegrityFault
from chat_realtime.application.locks import KeyedLock
from chat_realtime.application.policies import relationships as machine
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.relationship import (
    RelationshipEdge,
    RelationshipRecord,
    ordered_pair,
)
from chat_realtime.domain.value_objects.enums import PairState, RelationshipRole, RequestDirection

logger = logging.getLogger(__name__)

# Serializes mutations of one pair inside this process; the row lock taken by
# get_edge(for_update=True) does the same across processes.
_pair_locks = KeyedLock()


async def _apply(transition: machine.Transition, uow: UnitOfWork) -> None:
    before, after = transition.before, transition.after
    if before is None and after is not None:
        await uow.relationships_w.insert(after)
    elif before is not None and after is None:
        await uow.relationships_w.delete(before.user_low, before.user_high)
    elif before is not None and after is not None:
        await uow.relationships_w.update(after)
    await uow.commit()


async def _mutate(
    actor: int,
    other: int,
    uow: UnitOfWork,
    step: Callable[[RelationshipEdge | None], machine.Transition],
) -> PairState:
    async with _pair_locks.hold(ordered_pair(actor, other)):
        try:
            edge = await uow.relationships.get_edge(actor, other, for_update=True)
            transition = step(edge)
            await _apply(transition, uow)
        except IntegrityFault:
            await uow.rollback()
            logger.critical(
                "Relationship integrity fault for pair %s -> %s, rolled back",
                ordered_pair(actor, other),
                transition.state,
            )
            raise
        except Exception:
            await uow.rollback()
            raise
    logger.info("Relationship %s -> %s: %s", actor, other, transition.state)
    return transition.state


async def send_request(principal: Principal, target_id: int, uow: UnitOfWork) -> PairState:
    """Send a friend request, or accept one if target already asked.

    Returns REQUEST_SENT_BY_A for a new pending request, FRIENDS when the call
    completed a mutual acceptance.
    """
    now = datetime.now(timezone.utc)
    me = principal.identity
    return await _mutate(
        me, target_id, uow,
        lambda edge: machine.send_request(edge, me, target_id, now),
    )


async def accept_request(principal: Principal, requester_id: int, uow: UnitOfWork) -> PairState:
    now = datetime.now(timezone.utc)
    me = principal.identity
    return await _mutate(
        me, requester_id, uow,
        lambda edge: machine.accept_request(edge, me, requester_id, now),
    )


async def cancel_or_reject(
    principal: Principal,
    other_id: int,
    role: RelationshipRole,
    uow: UnitOfWork,
) -> PairState:
    me = principal.identity
    return await _mutate(
        me, other_id, uow,
        lambda edge: machine.cancel_or_reject(edge, me, other_id, role),
    )


async def get_relationship(identity: int, uow: UnitOfWork) -> RelationshipRecord:
    edges = await uow.relationships.list_edges(identity)
    record = RelationshipRecord.from_edges(identity, edges)
    problems = record.violations()
    if problems:
        logger.critical("Relationship record for %s is inconsistent: %s", identity, problems)
        raise IntegrityFault(f"Relationship record for {identity} is inconsistent")
    return record


async def get_pair_state(identity: int, other_id: int, uow: UnitOfWork) -> PairState:
    edge = await uow.relationships.get_edge(identity, other_id)
    return machine.pair_state(edge, identity)


async def list_friends(identity: int, uow: UnitOfWork) -> list[int]:
    record = await get_relationship(identity, uow)
    return sorted(record.friends)


async def list_requests(
    identity: int,
    direction: RequestDirection,
    uow: UnitOfWork,
) -> list[int]:
    record = await get_relationship(identity, uow)
    ids = record.sent if direction == RequestDirection.SENT else record.received
    return sorted(ids)
