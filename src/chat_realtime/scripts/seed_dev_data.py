"""Seed development data: creates the schema, a friendship, a group and a few messages."""
from __future__ import annotations

import asyncio
import logging
import uuid

from chat_realtime.application.dto.message import MessageBodyDTO
from chat_realtime.application.dto.principal import Principal
import chat_realtime.infrastructure.db.models  # noqa: F401
from chat_realtime.infrastructure.db.base import Base
from chat_realtime.infrastructure.db.session import AsyncSessionLocal, engine
from chat_realtime.infrastructure.db.uow import SqlAlchemyUoW
from chat_realtime.services import group_service, message_service, relationship_service

logger = logging.getLogger(__name__)

ALICE = Principal(identity=42, roles=[])
BOB = Principal(identity=43, roles=[])
CAROL = Principal(identity=44, roles=[])


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)

        await relationship_service.send_request(ALICE, BOB.identity, uow)
        await relationship_service.accept_request(BOB, ALICE.identity, uow)
        await relationship_service.send_request(CAROL, ALICE.identity, uow)

        group = await group_service.create_group(
            ALICE, "Weekend plans", [BOB.identity, CAROL.identity], None, uow,
        )

        conversation = [
            (ALICE, "Hi Bob!"),
            (BOB, "Hey, how are you?"),
        ]
        for sender, text in conversation:
            peer = BOB if sender is ALICE else ALICE
            await message_service.send_private_message(
                sender,
                peer.identity,
                MessageBodyDTO(client_msg_id=uuid.uuid4(), text=text),
                uow,
            )
        await message_service.send_group_message(
            CAROL,
            group.id,
            MessageBodyDTO(client_msg_id=uuid.uuid4(), text="Who is in for Saturday?"),
            uow,
        )
        logger.info(
            "Seeded friendship %s<->%s, group %s and %d messages",
            ALICE.identity, BOB.identity, group.id, len(conversation) + 1,
        )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
