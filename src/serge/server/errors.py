"""Error classification for file requests.

Maps filesystem failures onto status-only responses. Missing and
forbidden resources are routine and only logged at debug level;
everything else is an operator problem and is logged with a traceback.
"""

import logging

from serge.errors import HTTPError
from serge.http.request import Request
from serge.http.response import Response

logger = logging.getLogger("serge.server")


def status_for(exc: OSError) -> int:
    """HTTP status for a failed open or stat."""
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return 404
    if isinstance(exc, PermissionError):
        return 403
    return 500


def handle_os_error(exc: OSError, request: Request) -> Response:
    """Build the response for a filesystem error, logging 500s."""
    status = status_for(exc)
    if status == 500:
        logger.error("500 %s %s", request.method, request.path, exc_info=exc)
    else:
        logger.debug("%d %s %s", status, request.method, request.path)
    return Response(status=status)


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Build the status-only response for an HTTPError."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    return Response(status=exc.status, headers=exc.headers)


def handle_internal_error(exc: Exception, request: Request) -> Response:
    """Log an unexpected failure and answer 500 without details."""
    logger.exception("500 %s %s", request.method, request.path, exc_info=exc)
    return Response(status=500)
