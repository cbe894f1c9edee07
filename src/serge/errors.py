"""Serge exception hierarchy.

Shared across the accessor, the negotiator, the response wrapper and the
file server so every module raises and catches the same types.
"""

from dataclasses import dataclass


class SergeError(Exception):
    """Base for all serge-specific errors."""


class ConfigurationError(SergeError):
    """Raised when server configuration is invalid.

    Typically raised by ``ServerConfig.__post_init__`` at startup.
    """


class EncodingError(SergeError):
    """Base for content-encoding failures."""


class AcceptEncodingParseError(EncodingError):
    """The ``Accept-Encoding`` header value could not be parsed."""

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"malformed Accept-Encoding {value!r}: {reason}")
        self.value = value
        self.reason = reason


class UnknownEncodingError(EncodingError):
    """No encoder is registered for a negotiated encoding identifier."""

    def __init__(self, encoding: str) -> None:
        super().__init__(f"unknown content encoding: {encoding!r}")
        self.encoding = encoding


@dataclass(frozen=True, slots=True)
class HTTPError(SergeError):
    """An error that maps directly to an HTTP status code.

    Only the status and headers reach the client. ``detail`` is kept for
    logs and never written into the response body.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class ClientDisconnected(SergeError):  # noqa: N818
    """Sending to the client failed; the request is abandoned."""
