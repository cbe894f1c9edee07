"""Compressing decorator over an ASGI ``send`` callable.

``EncodingSend`` stands in for ``send`` while a response body is
written. Start messages pass through untouched; body bytes are fed
through the encoder. The body terminator is held back until
``aclose()``, which writes the encoder's final frame — without it the
client receives a truncated stream.

Use it as an async context manager so the frame is terminated even if
the body writer fails partway::

    async with EncodingSend("gzip", send) as encoded:
        await serve_content(request, encoded, ...)
"""

from __future__ import annotations

from types import TracebackType

from serge._internal.asgi import Message, Send
from serge.encoding.encoders import ENCODERS, Encoder
from serge.errors import UnknownEncodingError


def body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _declares_length(message: Message) -> bool:
    return any(name.lower() == b"content-length" for name, _ in message.get("headers", ()))


class EncodingSend:
    """Wrap *send* so body bytes are encoded with *encoding*.

    Raises ``UnknownEncodingError`` at construction if no encoder is
    registered for *encoding* — data is never passed through silently.
    ``head=True`` leaves the (empty) body of a HEAD response alone, and a
    response that declares ``Content-Length`` is already final, so it
    passes through as well.
    """

    __slots__ = ("_closed", "_encoder", "_passthrough", "_send", "_started", "encoding")

    def __init__(self, encoding: str, send: Send, *, level: int = 6, head: bool = False) -> None:
        factory = ENCODERS.get(encoding)
        if factory is None:
            raise UnknownEncodingError(encoding)
        self.encoding = encoding
        self._encoder: Encoder = factory(level)
        self._send = send
        self._passthrough = head
        self._started = False
        self._closed = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self._started = True
            if not body_allowed(message["status"]) or _declares_length(message):
                self._passthrough = True
            await self._send(message)
            return

        if message["type"] != "http.response.body" or self._passthrough:
            await self._send(message)
            return

        if self._closed:
            msg = "response body written after the encoder was closed"
            raise RuntimeError(msg)
        data = self._encoder.compress(message.get("body", b""))
        if data:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})

    async def flush(self) -> None:
        """Push pending compressed bytes to the client without ending the stream."""
        if self._passthrough or self._closed or not self._started:
            return
        data = self._encoder.flush()
        if data:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})

    async def aclose(self) -> None:
        """Write the final frame and end the body. Safe to call twice.

        Does nothing when no response was started.
        """
        if self._closed:
            return
        self._closed = True
        if not self._started or self._passthrough:
            return
        await self._send(
            {"type": "http.response.body", "body": self._encoder.finish(), "more_body": False}
        )

    async def __aenter__(self) -> EncodingSend:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
