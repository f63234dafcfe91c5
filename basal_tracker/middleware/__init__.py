"""ASGI middleware for the basal tracker API."""

from basal_tracker.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware", "CORRELATION_ID_HEADER"]
