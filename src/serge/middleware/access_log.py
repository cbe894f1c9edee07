"""Access logging middleware — one line per request on ``serge.access``."""

import logging
import time

from serge._internal.asgi import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("serge.access")


class AccessLog:
    """Log method, path, status, body bytes and duration of each request.

    Usage::

        server = FileServer(config, middleware=[AccessLog])

    The line is emitted even when the inner app raises; the status is
    then reported as 500 if no response had started.
    """

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status = 500
        sent = 0
        start = time.monotonic()

        async def logging_send(message: Message) -> None:
            nonlocal status, sent
            if message["type"] == "http.response.start":
                status = message["status"]
            elif message["type"] == "http.response.body":
                sent += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            elapsed = (time.monotonic() - start) * 1000
            path = scope["path"]
            if scope.get("query_string"):
                path = f"{path}?{scope['query_string'].decode('latin-1')}"
            client = scope.get("client")
            logger.info(
                '%s "%s %s" %d %d %.1fms',
                client[0] if client else "-",
                scope["method"],
                path,
                status,
                sent,
                elapsed,
            )
