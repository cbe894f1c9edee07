"""Serge — a static file server with content-coding negotiation.

Serves a directory over ASGI: directory index and trailing-slash
redirects, brotli / gzip / deflate negotiated against Accept-Encoding,
conditional GET and byte ranges.

Basic usage::

    from serge import FileServer, ServerConfig

    app = FileServer(ServerConfig(root="./public"))

Or from the shell (``pip install serge[server]``)::

    serge ./public --port 8080
"""

__version__ = "0.1.0-dev"
__all__ = [
    "AcceptEncodingParseError",
    "ConfigurationError",
    "FileServer",
    "HTTPError",
    "Request",
    "Response",
    "SergeError",
    "ServerConfig",
    "UnknownEncodingError",
    "negotiate_encoding",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import serge`` fast while providing a clean top-level API.
    """
    if name == "FileServer":
        from serge.server.handler import FileServer

        return FileServer

    if name == "ServerConfig":
        from serge.config import ServerConfig

        return ServerConfig

    if name == "Request":
        from serge.http.request import Request

        return Request

    if name == "Response":
        from serge.http.response import Response

        return Response

    if name == "negotiate_encoding":
        from serge.encoding.negotiation import negotiate_encoding

        return negotiate_encoding

    if name in (
        "AcceptEncodingParseError",
        "ConfigurationError",
        "HTTPError",
        "SergeError",
        "UnknownEncodingError",
    ):
        from serge import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
