"""
Parsing of received SSDP datagrams into classified header maps.

A datagram is decoded as UTF-8 and split on carriage returns. Lines without a
colon classify the message (request line or status line); lines with a colon
are headers, split at the first colon only so that values such as URLs and
USNs keep their own colons.
"""
import structlog

from ..exceptions import EncodingError
from ..models.common import MessageKind
from ..models.ssdp import Answer, ParsedMessage

logger = structlog.get_logger(__name__)

# Checked in order; the first marker found in the line wins.
_KIND_MARKERS: tuple[tuple[str, MessageKind], ...] = (
    ("M-SEARCH", MessageKind.MSEARCH),
    ("NOTIFY", MessageKind.NOTIFY),
    ("OK", MessageKind.RESPONSE),
)


def decode_datagram(data: bytes) -> str:
    """Decodes a raw datagram as UTF-8 text.

    Raises:
        EncodingError: if the bytes are not valid UTF-8.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Datagram is not valid UTF-8: {e}") from e


def classify_line(line: str) -> MessageKind:
    """Classifies a request/status line, e.g. ``HTTP/1.1 200 OK`` -> RESPONSE."""
    upper = line.upper()
    for marker, kind in _KIND_MARKERS:
        if marker in upper:
            return kind
    return MessageKind.UNKNOWN


def normalize_header_name(name: str) -> str:
    """Capitalizes each dash-separated segment: ``content-TYPE`` -> ``Content-Type``."""
    return "-".join(
        part[:1].upper() + part[1:].lower() if part else part
        for part in name.split("-")
    )


def parse_datagram(data: bytes, normalize_headers: bool = False) -> ParsedMessage:
    """Turns a raw datagram into a ParsedMessage.

    Never raises for malformed input: undecodable datagrams give an empty
    message, blank lines and headers without a name are skipped.
    """
    try:
        text = decode_datagram(data)
    except EncodingError as e:
        logger.debug("Skipping undecodable datagram", error=str(e), size=len(data))
        return ParsedMessage()

    kind: MessageKind | None = None
    headers: Answer = {}

    for line in text.split("\r"):
        name, sep, value = line.partition(":")
        if not sep:
            stripped = line.strip()
            if stripped and kind is None:
                kind = classify_line(stripped)
            continue

        name = name.strip()
        if not name:
            continue
        if normalize_headers:
            name = normalize_header_name(name)
        headers[name] = value.strip()

    return ParsedMessage(kind=kind, headers=headers)
