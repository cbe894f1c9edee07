"""Typed ASGI definitions.

Raw ASGI callables as used at the edges of serge. Users never need
these directly; they exist so every module speaks the same types.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]


def encode_headers(headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    """Lowercase and latin-1 encode header pairs for an ASGI start message."""
    return [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers]
