"""Immutable HTTP response for the answers the server builds itself.

Used for every response the server answers on its own — errors,
redirects, 406. File bodies are streamed by ``serge.server.content``
instead and never pass through here.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response, extended through ``with_header``.

    Status-only responses carry no body and no content type, so nothing
    about the filesystem leaks to the client.
    """

    body: bytes = b""
    status: int = 200
    content_type: str | None = None
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    # -- Accessors --

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or ``None``."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None


def redirect(location: str, status: int = 301) -> Response:
    """A bodiless redirect to *location*."""
    return Response(status=status).with_header("Location", location)
