"""ASGI response sending — translates serge Response objects to ASGI messages."""

from serge._internal.asgi import Send, encode_headers
from serge.encoding.wrapper import body_allowed
from serge.http.response import Response


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a Response into ASGI send() calls.

    The body is dropped for statuses that forbid one and for HEAD, but
    ``Content-Length`` still describes it.
    """
    raw_headers = encode_headers(response.headers)
    if response.content_type is not None:
        raw_headers.insert(0, (b"content-type", response.content_type.encode("latin-1")))

    body = response.body if body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )
