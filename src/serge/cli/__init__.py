"""Serge CLI — serve a directory over HTTP.

Entry point registered as ``serge`` in ``pyproject.toml``::

    [project.scripts]
    serge = "serge.cli:main"
"""

import argparse
import logging
import sys

from serge.config import DEFAULT_ENCODINGS, ServerConfig
from serge.errors import ConfigurationError
from serge.middleware.access_log import AccessLog
from serge.middleware.cache import CacheControl
from serge.middleware.protocol import Middleware
from serge.middleware.security_headers import SecurityHeadersMiddleware

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="serge",
        description="Serge — serve static files with content-coding negotiation.",
    )
    parser.add_argument("root", nargs="?", default=".", help="Directory to serve (default: .)")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host address")
    parser.add_argument("--port", type=int, default=8080, help="Bind port number")
    parser.add_argument(
        "--encodings",
        default=",".join(DEFAULT_ENCODINGS),
        help="Comma-separated content-codings in preference order (default: %(default)s)",
    )
    parser.add_argument("--index", default="index.html", help="Directory index file name")
    parser.add_argument(
        "--cache-control",
        default=None,
        help="Cache-Control value for successful responses (default: none)",
    )
    parser.add_argument(
        "--no-security-headers",
        action="store_true",
        help="Do not add X-Content-Type-Options / X-Frame-Options / Referrer-Policy",
    )
    parser.add_argument("--no-access-log", action="store_true", help="Disable the access log")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: %(default)s)",
    )
    parser.add_argument("--workers", type=int, default=1, help="Worker processes")
    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed arguments into a ServerConfig."""
    encodings = tuple(e.strip() for e in args.encodings.split(",") if e.strip())
    return ServerConfig(
        root=args.root,
        encodings=encodings,
        index=args.index,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        access_log=not args.no_access_log,
    )


def build_middleware(config: ServerConfig, args: argparse.Namespace) -> list[Middleware]:
    """Middleware constructors in chain order (outermost first)."""
    middleware: list[Middleware] = []
    if config.access_log:
        middleware.append(AccessLog)
    if not args.no_security_headers:
        middleware.append(SecurityHeadersMiddleware)
    if args.cache_control:
        middleware.append(CacheControl.configure(args.cache_control))
    return middleware


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``serge`` command."""
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    logging.basicConfig(level=config.log_level.upper(), format=LOG_FORMAT)

    from serge.server.handler import FileServer
    from serge.server.runner import run_server

    app = FileServer(config, middleware=build_middleware(config, args))
    logging.getLogger("serge.server").info(
        "Listening on http://%s:%d (encodings: %s)",
        config.host,
        config.port,
        ", ".join(config.encodings) if config.compresses else "identity only",
    )
    try:
        run_server(app, workers=args.workers)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
