"""Request correlation ids: taken from X-Request-ID or generated, echoed back."""
from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="-")

HEADER = "X-Request-ID"
_MAX_LENGTH = 128


def _incoming_id(request: Request) -> str:
    cid = request.headers.get(HEADER, "").strip()
    if not cid or len(cid) > _MAX_LENGTH:
        return uuid.uuid4().hex
    return cid


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        token = correlation_id_ctx.set(_incoming_id(request))
        try:
            response = await call_next(request)
            response.headers[HEADER] = correlation_id_ctx.get()
            return response
        finally:
            correlation_id_ctx.reset(token)
