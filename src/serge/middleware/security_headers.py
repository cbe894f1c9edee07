"""Security headers middleware — X-Content-Type-Options, X-Frame-Options, Referrer-Policy.

Adds common hardening headers to every response the server sends.
Static assets are exactly what MIME-sniffing and framing attacks aim
at, so unlike page-oriented setups nothing is skipped by content type.
"""

from dataclasses import dataclass
from functools import partial

from serge._internal.asgi import ASGIApp, Message, Receive, Scope, Send, encode_headers
from serge.middleware.protocol import Middleware


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    All values are applied as-is. ``None`` leaves a header out.
    """

    x_content_type_options: str | None = "nosniff"
    x_frame_options: str | None = "DENY"
    referrer_policy: str | None = "strict-origin-when-cross-origin"
    content_security_policy: str | None = None
    strict_transport_security: str | None = None

    def headers(self) -> tuple[tuple[str, str], ...]:
        pairs = (
            ("X-Content-Type-Options", self.x_content_type_options),
            ("X-Frame-Options", self.x_frame_options),
            ("Referrer-Policy", self.referrer_policy),
            ("Content-Security-Policy", self.content_security_policy),
            ("Strict-Transport-Security", self.strict_transport_security),
        )
        return tuple((name, value) for name, value in pairs if value)


class SecurityHeadersMiddleware:
    """Append security headers to every response start.

    Usage::

        server = FileServer(config, middleware=[SecurityHeadersMiddleware])

    Or with custom config::

        server = FileServer(config, middleware=[
            SecurityHeadersMiddleware.configure(
                SecurityHeadersConfig(x_frame_options="SAMEORIGIN"),
            ),
        ])
    """

    __slots__ = ("_raw", "app", "config")

    def __init__(self, app: ASGIApp, config: SecurityHeadersConfig | None = None) -> None:
        self.app = app
        self.config = config or SecurityHeadersConfig()
        self._raw = encode_headers(self.config.headers())

    @classmethod
    def configure(cls, config: SecurityHeadersConfig) -> Middleware:
        """Constructor bound to *config*, ready for a middleware chain."""
        return partial(cls, config=config)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def secured_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "headers": [*message.get("headers", ()), *self._raw]}
            await send(message)

        await self.app(scope, receive, secured_send)
