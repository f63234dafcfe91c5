"""Correlation ID middleware.

Tags every request with an ID (taken from X-Correlation-ID or freshly
generated), exposes it to log records through correlation_id_ctx, echoes
it on the response, and logs request completion with timing.

Written as plain ASGI rather than BaseHTTPMiddleware so it does not wrap
the response body or interfere with the async database driver.
"""

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from basal_tracker.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware:
    """Pure ASGI middleware adding a correlation ID to each request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(b"x-correlation-id", b"").decode() or str(
            uuid.uuid4()
        )
        token = correlation_id_ctx.set(correlation_id)

        start_time = time.perf_counter()
        status_code: int | None = None
        method = scope.get("method", "")
        path = scope.get("path", "")

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
                response_headers = list(message.get("headers", []))
                response_headers.append(
                    (CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode())
                )
                message = {**message, "headers": response_headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
