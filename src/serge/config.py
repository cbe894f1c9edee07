"""Server configuration.

ServerConfig is a frozen dataclass, validated once at startup and shared
read-only by every request.
"""

from dataclasses import dataclass, field
from pathlib import Path

from serge.encoding.encoders import IDENTITY, is_known_encoding
from serge.errors import ConfigurationError

DEFAULT_ENCODINGS: tuple[str, ...] = ("br", "gzip", "deflate")


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """File server configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServerConfig(root="./public", encodings=("gzip",), port=3000)

    ``root`` is resolved to an absolute path on creation and must be an
    existing directory.
    """

    # Content
    root: str | Path = "."
    encodings: tuple[str, ...] = DEFAULT_ENCODINGS  # Server preference order
    index: str = "index.html"

    # Streaming
    chunk_size: int = 64 * 1024
    gzip_level: int = 6
    brotli_quality: int = 5

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    # Logging
    log_level: str = "info"
    access_log: bool = True

    root_path: Path = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        root = Path(self.root).expanduser().resolve()
        if not root.is_dir():
            msg = f"root directory does not exist: {self.root}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "root_path", root)

        encodings = tuple(e.strip().lower() for e in self.encodings)
        for encoding in encodings:
            if not is_known_encoding(encoding):
                msg = f"unsupported encoding {encoding!r} in encodings"
                raise ConfigurationError(msg)
        if len(set(encodings)) != len(encodings):
            msg = f"duplicate entries in encodings: {self.encodings!r}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "encodings", encodings)

        if not self.index or "/" in self.index or self.index.startswith("."):
            msg = f"index must be a plain, non-hidden file name: {self.index!r}"
            raise ConfigurationError(msg)
        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be positive")
        if not 0 <= self.gzip_level <= 9:
            raise ConfigurationError("gzip_level must be between 0 and 9")
        if not 0 <= self.brotli_quality <= 11:
            raise ConfigurationError("brotli_quality must be between 0 and 11")

    @property
    def compresses(self) -> bool:
        """True if any supported encoding actually transforms the body."""
        return any(e != IDENTITY for e in self.encodings)
