"""Run a FileServer under the pounce ASGI server.

pounce is an optional dependency (``pip install serge[server]``); the
import is deferred so the library and its tests work without it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from serge.errors import ConfigurationError

if TYPE_CHECKING:
    from serge.server.handler import FileServer


def run_server(app: FileServer, *, workers: int = 1) -> None:
    """Serve *app* on ``app.config.host``/``app.config.port`` until interrupted.

    Pounce's ``run()`` takes an import string (e.g. ``"myapp:app"``),
    but we hold a live ``FileServer`` object, so ``pounce.Server`` is
    used directly with the ASGI callable.

    Args:
        app: The FileServer to expose.
        workers: Worker count handed to pounce (1 = single process).
    """
    try:
        from pounce.config import ServerConfig as PounceConfig
        from pounce.server import Server
    except ImportError as exc:
        msg = "Running the server requires 'pounce'. Install it with: pip install serge[server]"
        raise ConfigurationError(msg) from exc

    config = PounceConfig(
        host=app.config.host,
        port=app.config.port,
        workers=workers,
        reload=False,
    )
    Server(config, app).run()
