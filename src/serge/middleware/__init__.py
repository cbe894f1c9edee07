"""Middleware — plain ASGI constructors, no inheritance required.

A middleware is any callable matching:
    def mw(app: ASGIApp) -> ASGIApp

Built-in middleware:
    AccessLog -- One INFO line per request on the ``serge.access`` logger
    CacheControl -- Cache-Control on successful file responses
    SecurityHeadersMiddleware -- X-Content-Type-Options, X-Frame-Options, Referrer-Policy
"""

from serge.middleware.access_log import AccessLog
from serge.middleware.cache import CacheControl
from serge.middleware.protocol import Chain, Middleware, chain
from serge.middleware.security_headers import (
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
)

__all__ = [
    "AccessLog",
    "CacheControl",
    "Chain",
    "Middleware",
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
    "chain",
]
