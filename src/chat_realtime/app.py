from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_realtime.api.deps import open_uow
from chat_realtime.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_realtime.api.middleware.metrics import RequestTimingMiddleware
from chat_realtime.api.v1.routers import groups, health, messages, relationships, ws
from chat_realtime.application.exceptions import (
    ConflictError,
    ForbiddenError,
    IntegrityFault,
    NotFoundError,
    ValidationError,
)
from chat_realtime.config import settings
from chat_realtime.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry
from chat_realtime.services.fanout_dispatcher import FanoutDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        app.state.dispatcher.handle,
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await app.state.registry.close()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Realtime Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # One registry per process; the dispatcher delivers into it.
    app.state.registry = ConnectionRegistry()
    app.state.dispatcher = FanoutDispatcher(app.state.registry)
    app.state.uow_factory = open_uow

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(relationships.router)
    app.include_router(groups.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(IntegrityFault)
    async def _integrity(req: Request, exc: IntegrityFault) -> JSONResponse:
        logger.critical("Integrity fault on %s %s: %s", req.method, req.url.path, exc.detail)
        return JSONResponse(status_code=500, content={"detail": "Relationship data is inconsistent"})
