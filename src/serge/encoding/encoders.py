"""Streaming body encoders, one per content-coding.

Each encoder satisfies the same three-call contract::

    encoder.compress(data)  # bytes in, possibly-empty bytes out
    encoder.flush()         # pending output, stream stays open
    encoder.finish()        # final frame, encoder is spent

gzip and deflate come from ``zlib``; br comes from the ``brotli`` package.
``deflate`` is the zlib-wrapped format (RFC 9110 §8.4.1.2), not raw DEFLATE.
"""

import zlib
from collections.abc import Callable
from typing import Protocol

import brotli

IDENTITY = "identity"
BROTLI = "br"
GZIP = "gzip"
DEFLATE = "deflate"


class Encoder(Protocol):
    """A streaming compressor."""

    def compress(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...

    def finish(self) -> bytes: ...


class ZlibEncoder:
    """gzip or zlib framing around DEFLATE, selected by ``wbits``."""

    __slots__ = ("_compressor",)

    def __init__(self, wbits: int, level: int = 6) -> None:
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, wbits)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.compress(data)

    def flush(self) -> bytes:
        return self._compressor.flush(zlib.Z_SYNC_FLUSH)

    def finish(self) -> bytes:
        return self._compressor.flush(zlib.Z_FINISH)


class BrotliEncoder:
    __slots__ = ("_compressor",)

    def __init__(self, quality: int = 5) -> None:
        self._compressor = brotli.Compressor(quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.flush()

    def finish(self) -> bytes:
        return self._compressor.finish()


def _gzip(level: int) -> Encoder:
    return ZlibEncoder(16 + zlib.MAX_WBITS, level)


def _deflate(level: int) -> Encoder:
    return ZlibEncoder(zlib.MAX_WBITS, level)


def _brotli(level: int) -> Encoder:
    return BrotliEncoder(level)


# encoding identifier -> factory(level)
ENCODERS: dict[str, Callable[[int], Encoder]] = {
    BROTLI: _brotli,
    GZIP: _gzip,
    DEFLATE: _deflate,
}


def is_known_encoding(encoding: str) -> bool:
    """True for identity and every registered compressed encoding."""
    return encoding == IDENTITY or encoding in ENCODERS
