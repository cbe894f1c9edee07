"""Accept-Encoding parsing and content-coding negotiation.

The server's encoding list is authoritative: negotiation walks it in the
server's preference order and picks the first coding the client accepts
with a nonzero weight. Client q-values only decide *whether* a coding is
acceptable, not which acceptable coding wins::

    >>> negotiate_encoding("gzip;q=1.0, br;q=0.5", ("br", "gzip", "deflate"))
    'br'

``None`` means nothing is acceptable (the caller answers 406). That is
distinct from ``"identity"``, which means "send the bytes as they are".
"""

import re
from dataclasses import dataclass
from functools import lru_cache

from serge.encoding.encoders import IDENTITY
from serge.errors import AcceptEncodingParseError

_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_QVALUE = re.compile(r"^(?:0(?:\.[0-9]{0,3})?|1(?:\.0{0,3})?)$")
_QUOTED = re.compile(r'^"(?:[^"\\]|\\.)*"$')

WILDCARD = "*"


@dataclass(frozen=True, slots=True)
class AcceptEncoding:
    """Parsed ``Accept-Encoding`` header.

    ``weights`` keeps the first weight given for each (lowercased) coding,
    in header order. An absent or empty header parses to no weights, which
    leaves identity as the only acceptable coding.
    """

    weights: tuple[tuple[str, float], ...] = ()

    def quality(self, coding: str) -> float:
        """Weight the client assigns to *coding*.

        An explicit entry wins, then ``*``. Identity is implicitly
        acceptable unless excluded by one of those.
        """
        coding = coding.lower()
        wildcard: float | None = None
        for name, q in self.weights:
            if name == coding:
                return q
            if name == WILDCARD and wildcard is None:
                wildcard = q
        if wildcard is not None:
            return wildcard
        return 1.0 if coding == IDENTITY else 0.0

    def accepts(self, coding: str) -> bool:
        return self.quality(coding) > 0


def parse_accept_encoding(value: str | None) -> AcceptEncoding:
    """Parse an ``Accept-Encoding`` value.

    Raises:
        AcceptEncodingParseError: If any element is not a valid coding
            with an optional ``q`` weight.
    """
    if value is None:
        return AcceptEncoding()
    return AcceptEncoding(_parse(value))


def _split(value: str, sep: str) -> list[str]:
    """Split *value* on *sep*, leaving quoted strings intact.

    Raises:
        AcceptEncodingParseError: On an unterminated quoted string.
    """
    parts: list[str] = []
    start = 0
    quoted = escaped = False
    for i, char in enumerate(value):
        if escaped:
            escaped = False
        elif quoted and char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == sep and not quoted:
            parts.append(value[start:i])
            start = i + 1
    if quoted:
        raise AcceptEncodingParseError(value, "unterminated quoted string")
    parts.append(value[start:])
    return parts


def _is_param_value(raw: str) -> bool:
    return bool(_TOKEN.match(raw) or _QUOTED.match(raw))


@lru_cache(maxsize=256)
def _parse(value: str) -> tuple[tuple[str, float], ...]:
    weights: dict[str, float] = {}
    # Empty list elements ("gzip,,br") are allowed and skipped.
    for element in _split(value, ","):
        element = element.strip()
        if not element:
            continue
        coding, *params = (part.strip() for part in _split(element, ";"))
        if not _TOKEN.match(coding):
            raise AcceptEncodingParseError(value, f"invalid coding {coding!r}")
        q = 1.0
        for param in params:
            name, sep, raw = param.partition("=")
            name = name.strip().lower()
            raw = raw.strip()
            if not sep or not _TOKEN.match(name) or not _is_param_value(raw):
                raise AcceptEncodingParseError(value, f"invalid parameter {param!r}")
            if name == "q":
                if not _QVALUE.match(raw):
                    raise AcceptEncodingParseError(value, f"invalid weight {raw!r}")
                q = float(raw)
        weights.setdefault(coding.lower(), q)
    return tuple(weights.items())


def negotiate_encoding(value: str | None, supported: tuple[str, ...]) -> str | None:
    """Pick a content-coding for the response, or ``None`` if none is acceptable.

    Args:
        value: Raw ``Accept-Encoding`` header value, ``None`` when absent.
        supported: Server encodings in preference order.

    Raises:
        AcceptEncodingParseError: If *value* is malformed.
    """
    accept = parse_accept_encoding(value)
    for encoding in supported:
        if accept.accepts(encoding):
            return encoding
    if IDENTITY not in supported and accept.accepts(IDENTITY):
        return IDENTITY
    return None
