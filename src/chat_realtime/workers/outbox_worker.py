"""Outbox worker: relays committed chat events to the fan-out channel in commit order."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from chat_realtime.application.ports.bus import EventPublisher
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.config import settings
from chat_realtime.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from chat_realtime.infrastructure.db.session import AsyncSessionLocal
from chat_realtime.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 1
MAX_DELAY_SECONDS = 60


def calc_backoff(attempts: int, now: datetime | None = None) -> datetime:
    delay = min(BASE_DELAY_SECONDS * (2 ** attempts), MAX_DELAY_SECONDS)
    return (now or datetime.now(timezone.utc)) + timedelta(seconds=delay)


async def run_outbox_worker() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    publisher = RedisPubSubPublisher(redis, settings.REDIS_PUBSUB_CHANNEL)

    logger.info(
        "Outbox worker started (poll=%.1fs, batch=%d, max_attempts=%d)",
        settings.OUTBOX_POLL_INTERVAL,
        settings.OUTBOX_BATCH_SIZE,
        settings.OUTBOX_MAX_ATTEMPTS,
    )

    try:
        while True:
            try:
                async with AsyncSessionLocal() as session:
                    await relay_batch(SqlAlchemyUoW(session), publisher)
            except Exception:
                logger.exception("Outbox worker loop error")
            await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL)
    finally:
        await redis.aclose()


async def relay_batch(
    uow: UnitOfWork,
    publisher: EventPublisher,
    batch_size: int | None = None,
) -> int:
    """Publish one batch. Returns how many records went out.

    The first failure ends the batch: the failed record is rescheduled and
    everything after it goes back to pending behind it, so subscribers never
    see events out of order.
    """
    batch = await uow.outbox.fetch_pending(batch_size or settings.OUTBOX_BATCH_SIZE)
    if not batch:
        return 0

    sent_ids: list[int] = []
    held_ids: list[int] = []
    for position, record in enumerate(batch):
        try:
            await publisher.publish(record.event_type, record.payload)
        except Exception:
            logger.exception(
                "Failed to publish outbox record %d (attempt %d)", record.id, record.attempts + 1,
            )
            await uow.outbox.mark_failed(record.id, calc_backoff(record.attempts))
            if record.attempts + 1 >= settings.OUTBOX_MAX_ATTEMPTS:
                logger.error("Outbox record %d gave up after %d attempts", record.id, record.attempts + 1)
            held_ids = [r.id for r in batch[position + 1:]]
            break
        sent_ids.append(record.id)

    if sent_ids:
        await uow.outbox.mark_sent(sent_ids)
    if held_ids:
        await uow.outbox.release(held_ids)

    await uow.commit()
    if sent_ids:
        logger.info("Published %d outbox records", len(sent_ids))
    return len(sent_ids)


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run_outbox_worker())


if __name__ == "__main__":
    main()
