"""Cache-Control middleware for successful file responses."""

from functools import partial

from serge._internal.asgi import ASGIApp, Message, Receive, Scope, Send
from serge.middleware.protocol import Middleware

CACHEABLE_STATUSES = frozenset({200, 206, 304})


class CacheControl:
    """Set ``Cache-Control`` on 200, 206 and 304 responses.

    Error responses and redirects are left alone, so a transient 404
    is never cached for an hour. An existing ``Cache-Control`` header
    from the inner app wins.
    """

    __slots__ = ("_value", "app")

    def __init__(self, app: ASGIApp, value: str = "public, max-age=3600") -> None:
        self.app = app
        self._value = value.encode("latin-1")

    @classmethod
    def configure(cls, value: str) -> Middleware:
        """Constructor bound to *value*, ready for a middleware chain."""
        return partial(cls, value=value)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def caching_send(message: Message) -> None:
            if message["type"] == "http.response.start" and message["status"] in CACHEABLE_STATUSES:
                headers = list(message.get("headers", ()))
                if not any(name.lower() == b"cache-control" for name, _ in headers):
                    headers.append((b"cache-control", self._value))
                    message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, caching_send)
