"""The file-serving ASGI application.

``FileServer`` is the only component that touches raw ASGI directly. It
turns the scope into a Request, resolves the path through the rooted
filesystem, follows directory conventions, negotiates a content-coding
and hands the open file to ``serve_content``.

Resolution is a loop rather than recursion, and takes at most two passes:

1. open the cleaned path; errors map to 404 / 403 / 500
2. a directory without trailing slash redirects (301) to ``path/``
3. a directory with trailing slash retries with ``path/index.html``
4. a regular file is negotiated and streamed

Each iteration owns its handle and closes it before the next one opens.
"""

import logging
import posixpath
from collections.abc import Iterable
from urllib.parse import quote

import anyio.to_thread

from serge._internal.asgi import Message, Receive, Scope, Send
from serge.config import ServerConfig
from serge.encoding.encoders import BROTLI, IDENTITY
from serge.encoding.negotiation import negotiate_encoding
from serge.encoding.wrapper import EncodingSend
from serge.errors import (
    AcceptEncodingParseError,
    ClientDisconnected,
    HTTPError,
)
from serge.filesystem import File, FileInfo, RootedFileSystem
from serge.http.request import Request
from serge.http.response import Response, redirect
from serge.middleware.protocol import Middleware, chain
from serge.server.content import serve_content
from serge.server.errors import handle_http_error, handle_internal_error, handle_os_error
from serge.server.sender import send_response

logger = logging.getLogger("serge.server")

ALLOWED_METHODS = ("GET", "HEAD")


def clean_path(path: str) -> str:
    """Canonical lookup key for a URL path.

    Collapses ``.``, ``..`` and repeated slashes; the result always starts
    with a single ``/`` and never climbs above it.
    """
    if not path.startswith("/"):
        path = "/" + path
    cleaned = posixpath.normpath(path)
    # POSIX keeps a leading "//" as implementation-defined; URLs do not.
    return "/" + cleaned.lstrip("/")


def relative_redirect(path: str, query_string: str) -> Response:
    """301 to *path*, carrying the original query string verbatim.

    The Location is always relative, never scheme or host: leading
    slashes and backslashes collapse to one ``/`` so ``//host`` and
    ``/\\host`` cannot become network-path references.
    """
    path = "/" + path.lstrip("/\\")
    if query_string:
        path = f"{path}?{query_string}"
    return redirect(path, status=301)


class _TrackedSend:
    """Remembers whether the response started; send failures mean the client left."""

    __slots__ = ("_send", "started")

    def __init__(self, send: Send) -> None:
        self._send = send
        self.started = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
        try:
            await self._send(message)
        except OSError as exc:
            raise ClientDisconnected(str(exc)) from exc


class FileServer:
    """ASGI application serving files below ``config.root``.

    Usage::

        from serge import FileServer, ServerConfig
        from serge.middleware import AccessLog

        app = FileServer(ServerConfig(root="./public"), middleware=[AccessLog])

    Middleware constructors are applied in order, the first one outermost.
    Configuration and middleware are fixed at construction.
    """

    __slots__ = ("_app", "config", "fs")

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        middleware: Iterable[Middleware] = (),
    ) -> None:
        self.config = config or ServerConfig()
        self.fs = RootedFileSystem(self.config.root_path)
        self._app = chain(middleware).then(self._handle_http)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "http":
            await self._app(scope, receive, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Serving %s", self.config.root_path)
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.serve(Request.from_asgi(scope), send)

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    async def serve(self, request: Request, send: Send) -> None:
        """Answer one request on *send*. Never raises for request-level failures."""
        tracked = _TrackedSend(send)
        try:
            response = await self._resolve(request, tracked)
        except HTTPError as exc:
            response = handle_http_error(exc, request)
        except ClientDisconnected:
            logger.debug("client went away during %s %s", request.method, request.path)
            return
        except Exception as exc:
            if tracked.started:
                # Too late for a status; the body is already on the wire.
                logger.exception("error while streaming %s %s", request.method, request.path)
                return
            response = handle_internal_error(exc, request)

        if response is None:
            return
        try:
            await send_response(response, tracked, head=request.is_head)
        except ClientDisconnected:
            logger.debug("client went away during %s %s", request.method, request.path)

    async def _resolve(self, request: Request, send: Send) -> Response | None:
        """Resolve and stream the resource. Returns a Response only for non-file answers."""
        if request.method not in ALLOWED_METHODS:
            raise HTTPError(405, "method not allowed", (("Allow", ", ".join(ALLOWED_METHODS)),))

        lookup = clean_path(request.path)
        location = request.raw_path
        # At most two passes: a rewritten index location never ends in "/".
        while True:
            try:
                file = await anyio.to_thread.run_sync(self.fs.open, lookup)
            except OSError as exc:
                return handle_os_error(exc, request)

            with file:
                try:
                    info = await anyio.to_thread.run_sync(file.stat)
                except OSError as exc:
                    return handle_os_error(exc, request)

                if not info.is_dir:
                    await self._send_file(request, send, file, info)
                    return None

                if not location.endswith("/"):
                    return relative_redirect(location + "/", request.query_string)

                lookup = posixpath.join(lookup, self.config.index)
                location = quote(lookup)

    def _negotiate(self, request: Request) -> str:
        try:
            encoding = negotiate_encoding(request.accept_encoding, self.config.encodings)
        except AcceptEncodingParseError as exc:
            raise HTTPError(406, str(exc)) from exc
        if encoding is None:
            raise HTTPError(406, f"nothing acceptable in {request.accept_encoding!r}")
        return encoding

    async def _send_file(self, request: Request, send: Send, file: File, info: FileInfo) -> None:
        encoding = self._negotiate(request)
        headers: tuple[tuple[str, str], ...] = ()
        if self.config.compresses:
            headers = (("Vary", "Accept-Encoding"),)

        if encoding == IDENTITY:
            await serve_content(
                request,
                send,
                info.name,
                info.modified,
                file,
                size=info.size,
                headers=headers,
                chunk_size=self.config.chunk_size,
            )
            return

        level = self.config.brotli_quality if encoding == BROTLI else self.config.gzip_level
        async with EncodingSend(encoding, send, level=level, head=request.is_head) as encoded:
            await serve_content(
                request,
                encoded,
                info.name,
                info.modified,
                file,
                size=info.size,
                headers=(("Content-Encoding", encoding), *headers),
                chunk_size=self.config.chunk_size,
            )
