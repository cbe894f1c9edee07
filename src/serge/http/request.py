"""Immutable HTTP request.

Frozen metadata taken from the ASGI scope. The file server never reads
a request body, so there is no body access here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from serge.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the percent-decoded path from the scope; ``raw_path``
    keeps the bytes as the client sent them so redirects can echo the
    path without re-encoding surprises.
    """

    method: str
    path: str
    raw_path: str
    query_string: str
    headers: Headers

    # -- Computed properties --

    @property
    def accept_encoding(self) -> str | None:
        """The ``Accept-Encoding`` value, ``None`` when the client sent none."""
        return self.headers.get_joined("accept-encoding")

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any]) -> Request:
        """Create a Request from an ASGI HTTP scope."""
        path = scope["path"]
        raw_path = scope.get("raw_path") or b""
        return cls(
            method=scope["method"].upper(),
            path=path,
            raw_path=raw_path.decode("latin-1") if raw_path else quote(path),
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers=Headers(tuple(scope.get("headers", ()))),
        )
