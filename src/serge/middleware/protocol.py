"""Middleware protocol and the ordered constructor chain.

A middleware is any callable that takes the next ASGI app and returns
a new one::

    def timing(app: ASGIApp) -> ASGIApp:
        async def wrapped(scope: Scope, receive: Receive, send: Send) -> None:
            start = time.monotonic()
            await app(scope, receive, send)
            logger.info("took %.3fs", time.monotonic() - start)

        return wrapped

No base class required. Classes whose ``__init__`` takes the app work
as-is; bind extra options with ``functools.partial``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeAlias

from serge._internal.asgi import ASGIApp

# Wraps the next app in the chain
Middleware: TypeAlias = "Callable[[ASGIApp], ASGIApp]"


class Chain:
    """An immutable, ordered list of middleware constructors.

    The first constructor is the outermost: it sees the request first
    and the response last, and may answer without calling inward::

        app = Chain(AccessLog, SecurityHeadersMiddleware).then(server)
    """

    __slots__ = ("middleware",)

    def __init__(self, *middleware: Middleware) -> None:
        self.middleware: tuple[Middleware, ...] = middleware

    def append(self, *middleware: Middleware) -> Chain:
        """Return a new chain with *middleware* added innermost."""
        return Chain(*self.middleware, *middleware)

    def extend(self, other: Chain) -> Chain:
        """Return a new chain with *other*'s middleware added innermost."""
        return Chain(*self.middleware, *other.middleware)

    def then(self, app: ASGIApp) -> ASGIApp:
        """Wrap *app* in every middleware, innermost first."""
        handler = app
        for mw in reversed(self.middleware):
            handler = mw(handler)
        return handler

    def __len__(self) -> int:
        return len(self.middleware)


def chain(middleware: Iterable[Middleware] = ()) -> Chain:
    """Build a Chain from any iterable of middleware constructors."""
    return Chain(*middleware)
