"""
Request middleware for logging, timing, request ID tracking and caller
identity.
"""

import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp
import structlog

from booking_api.core.config import Settings, get_settings
from booking_api.core.logging import get_logger
from booking_api.core.security import caller_from_authorization

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

# Polled by orchestrators and scrapers; logged at debug only
QUIET_PATHS = frozenset({"/health", "/metrics"})


def request_id_for(request: Request) -> str:
    """Reuse the id a proxy or client sent, otherwise mint one."""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex[:12]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request id, method and path for every log call made while the
    request is handled, echoes the id back and logs one line per request:
    error for 5xx, warning for other 4xx and info otherwise.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request_id_for(request)
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        elif request.url.path in QUIET_PATHS:
            log = logger.debug
        else:
            log = logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response



class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Decodes the Authorization header into a CallerIdentity on
    `request.state.caller`. Requests without a usable token continue as
    anonymous; operations decide whether that is enough.
    """

    def __init__(self, app: ASGIApp, settings: Optional[Settings] = None):
        super().__init__(app)
        self.settings = settings or get_settings()

    async def dispatch(self, request: Request, call_next) -> Response:
        caller = caller_from_authorization(request.headers.get("Authorization"), self.settings)
        request.state.caller = caller
        if caller is not None:
            structlog.contextvars.bind_contextvars(userid=caller.userid)
        return await call_next(request)
