"""Content-coding support: negotiation, encoders, and the send wrapper.

    negotiate_encoding -- pick a coding from Accept-Encoding in server order
    EncodingSend -- ASGI send decorator that compresses the body
    ENCODERS -- registry of streaming encoders keyed by coding name
"""

from serge.encoding.encoders import BROTLI, DEFLATE, ENCODERS, GZIP, IDENTITY, Encoder
from serge.encoding.negotiation import AcceptEncoding, negotiate_encoding, parse_accept_encoding
from serge.encoding.wrapper import EncodingSend, body_allowed

__all__ = [
    "BROTLI",
    "DEFLATE",
    "ENCODERS",
    "GZIP",
    "IDENTITY",
    "AcceptEncoding",
    "Encoder",
    "EncodingSend",
    "body_allowed",
    "negotiate_encoding",
    "parse_accept_encoding",
]
