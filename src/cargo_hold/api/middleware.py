"""Pure ASGI middleware for correlation IDs and request logging.

Raw ASGI instead of BaseHTTPMiddleware so file downloads stream through
without the response body being buffered.
"""

import time

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from cargo_hold.common.logging import set_correlation_id

logger = structlog.get_logger()

CORRELATION_HEADER = "X-Correlation-ID"
TENANT_HEADER = "X-Tenant-ID"


class CorrelationIdMiddleware:
    """Echoes or mints ``X-Correlation-ID`` and binds it (plus the tenant header) to log context."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        cid = set_correlation_id(headers.get(CORRELATION_HEADER))

        structlog.contextvars.clear_contextvars()
        tenant = headers.get(TENANT_HEADER)
        if tenant:
            structlog.contextvars.bind_contextvars(tenant=tenant)

        async def send_with_cid(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(CORRELATION_HEADER, cid)
            await send(message)

        await self.app(scope, receive, send_with_cid)


class RequestLoggingMiddleware:
    """Logs one ``http_request`` event per request with status and latency.

    ``surface`` tells the public and private listeners apart in the log stream.
    Health probes are not logged.
    """

    def __init__(self, app: ASGIApp, surface: str = "public", skip_paths: tuple[str, ...] = ("/health",)) -> None:
        self.app = app
        self.surface = surface
        self.skip_paths = skip_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.skip_paths:
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            logger.info(
                "http_request",
                surface=self.surface,
                method=scope["method"],
                path=scope["path"],
                status_code=status_code,
                latency_ms=round((time.perf_counter() - start) * 1000, 1),
            )
