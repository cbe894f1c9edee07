"""Conditional and range-aware file body writer.

``serve_content`` turns an open file into a complete ASGI response:
content type, ``Last-Modified``, ``If-Modified-Since`` /
``If-Unmodified-Since`` preconditions, single byte ranges, HEAD, and
chunked reads off the event loop. It writes to whatever ``send`` it is
given, so an ``EncodingSend`` can sit in front of it transparently.

Only one range per request is honoured; multi-range and malformed
``Range`` headers fall back to the full body, which RFC 9110 allows.
"""

import mimetypes
import re
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime

import anyio.to_thread

from serge._internal.asgi import Send, encode_headers
from serge.filesystem import File
from serge.http.request import Request
from serge.http.response import Response
from serge.server.sender import send_response

SNIFF_LENGTH = 512

_DIGITS = re.compile(r"[0-9]+")

# mimetypes reports compressed archives as (type, encoding); on disk they
# are opaque blobs with their own media types.
_ARCHIVE_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "br": "application/x-brotli",
    "compress": "application/x-compress",
}


class RangeNotSatisfiable(Exception):  # noqa: N818
    """The requested byte range lies entirely outside the file."""


def http_date(value: datetime) -> str:
    """Format *value* as an IMF-fixdate (``Sun, 06 Nov 1994 08:49:37 GMT``)."""
    return format_datetime(value, usegmt=True)


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP date, or return ``None`` if absent or invalid."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def parse_range(value: str, size: int) -> tuple[int, int] | None:
    """Parse a ``Range`` header against a file of *size* bytes.

    Returns ``(start, length)`` for a single satisfiable range, or ``None``
    when the header should be ignored (other units, several ranges,
    syntax errors).

    Raises:
        RangeNotSatisfiable: If the single range starts past the end.
    """
    unit, sep, spec = value.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None
    specs = [s.strip() for s in spec.split(",") if s.strip()]
    if len(specs) != 1:
        return None
    first, dash, last = specs[0].partition("-")
    first, last = first.strip(), last.strip()
    if not dash:
        return None

    if not first:
        # Suffix range: the last N bytes.
        if not _DIGITS.fullmatch(last):
            return None
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(value)
        suffix = min(suffix, size)
        return size - suffix, suffix

    if not _DIGITS.fullmatch(first) or (last and not _DIGITS.fullmatch(last)):
        return None
    start = int(first)
    if start >= size:
        raise RangeNotSatisfiable(value)
    end = size - 1 if not last else min(int(last), size - 1)
    if end < start:
        return None
    return start, end - start + 1


def guess_content_type(name: str) -> str | None:
    """Media type for *name* from its extension, ``None`` if unknown."""
    content_type, encoding = mimetypes.guess_type(name, strict=False)
    if encoding is not None:
        return _ARCHIVE_TYPES.get(encoding, "application/octet-stream")
    if content_type is None:
        return None
    if content_type.startswith("text/") or content_type in {
        "application/javascript",
        "application/json",
    }:
        return f"{content_type}; charset=utf-8"
    return content_type


def sniff_content_type(data: bytes) -> str:
    """Classify the first bytes of a file with no recognised extension."""
    if not data:
        return "text/plain; charset=utf-8"
    head = data.lstrip()[:14].lower()
    if head.startswith((b"<!doctype html", b"<html")):
        return "text/html; charset=utf-8"
    if b"\x00" in data:
        return "application/octet-stream"
    try:
        data.decode("utf-8")
    except UnicodeDecodeError as exc:
        # A multi-byte sequence cut off by the sniff window is still text.
        if exc.reason != "unexpected end of data":
            return "application/octet-stream"
    return "text/plain; charset=utf-8"


def _not_modified(request: Request, modified: datetime) -> bool:
    if request.method not in ("GET", "HEAD"):
        return False
    since = parse_http_date(request.headers.get("if-modified-since"))
    return since is not None and modified <= since


def _precondition_failed(request: Request, modified: datetime) -> bool:
    since = parse_http_date(request.headers.get("if-unmodified-since"))
    return since is not None and modified > since


def _range_applies(request: Request, modified: datetime) -> bool:
    if_range = request.headers.get("if-range")
    if if_range is None:
        return True
    # Entity tags are never issued, so a tag can never match.
    since = parse_http_date(if_range)
    return since is not None and modified == since


async def _read(file: File, size: int) -> bytes:
    return await anyio.to_thread.run_sync(file.read, size)


async def serve_content(
    request: Request,
    send: Send,
    name: str,
    modified: datetime,
    file: File,
    *,
    size: int,
    headers: tuple[tuple[str, str], ...] = (),
    chunk_size: int = 64 * 1024,
) -> int:
    """Write the file to *send* honouring conditional and range headers.

    ``Content-Length`` is only sent when *headers* carry no
    ``Content-Encoding``, since the encoded length is unknown up front.
    Returns the status code that was sent.
    """
    modified = modified.replace(microsecond=0)
    last_modified = ("Last-Modified", http_date(modified))

    if _precondition_failed(request, modified):
        await send_response(Response(status=412), send, head=request.is_head)
        return 412

    if _not_modified(request, modified):
        kept = tuple((k, v) for k, v in headers if k.lower() != "content-encoding")
        await send_response(Response(status=304, headers=(*kept, last_modified)), send)
        return 304

    content_type = guess_content_type(name)
    if content_type is None:
        sniffed = await _read(file, SNIFF_LENGTH)
        await anyio.to_thread.run_sync(file.seek, 0)
        content_type = sniff_content_type(sniffed)

    status, start, length = 200, 0, size
    response_headers = [
        ("Content-Type", content_type),
        ("Accept-Ranges", "bytes"),
        last_modified,
        *headers,
    ]

    range_header = request.headers.get("range")
    if range_header is not None and request.method == "GET" and _range_applies(request, modified):
        try:
            byte_range = parse_range(range_header, size)
        except RangeNotSatisfiable:
            unsatisfiable = Response(status=416).with_header("Content-Range", f"bytes */{size}")
            await send_response(unsatisfiable, send)
            return 416
        if byte_range is not None:
            start, length = byte_range
            status = 206
            response_headers.append(
                ("Content-Range", f"bytes {start}-{start + length - 1}/{size}")
            )

    if not any(k.lower() == "content-encoding" for k, _ in headers):
        response_headers.append(("Content-Length", str(length)))

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": encode_headers(tuple(response_headers)),
        }
    )

    if request.is_head:
        await send({"type": "http.response.body", "body": b"", "more_body": False})
        return status

    if start:
        await anyio.to_thread.run_sync(file.seek, start)
    remaining = length
    while remaining > 0:
        chunk = await _read(file, min(chunk_size, remaining))
        if not chunk:
            break
        remaining -= len(chunk)
        await send({"type": "http.response.body", "body": chunk, "more_body": True})
    await send({"type": "http.response.body", "body": b"", "more_body": False})
    return status
