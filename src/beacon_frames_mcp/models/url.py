"""Eddystone-URL frame.

Layout::

    +---------+------+----------+--------+---------------------+
    | AA FE   | 0x10 | Tx power | Scheme | Encoded URL         |
    | 2 bytes | 1 B  | 1 byte   | 1 byte | 1-17 bytes          |
    +---------+------+----------+--------+---------------------+

The scheme byte selects a URL prefix. Inside the encoded URL, bytes
0x00-0x0D expand to common top-level domains; printable ASCII is copied
verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from ..protocol.framing import (
    EDDYSTONE_HEADER_SIZE,
    EddystoneFrameType,
    build_eddystone_header,
    get_eddystone_frame_type,
)
from ..utils.bits import signed_byte, unsigned_byte
from .base import BeaconFrame, FrameField, FrameFields

logger = logging.getLogger(__name__)

URL_SCHEMES = {
    0x00: "http://www.",
    0x01: "https://www.",
    0x02: "http://",
    0x03: "https://",
}

URL_EXPANSIONS = {
    0x00: ".com/",
    0x01: ".org/",
    0x02: ".edu/",
    0x03: ".net/",
    0x04: ".info/",
    0x05: ".biz/",
    0x06: ".gov/",
    0x07: ".com",
    0x08: ".org",
    0x09: ".edu",
    0x0A: ".net",
    0x0B: ".info",
    0x0C: ".biz",
    0x0D: ".gov",
}

MAX_ENCODED_URL = 17

OFF_TX_POWER = EDDYSTONE_HEADER_SIZE
OFF_SCHEME = OFF_TX_POWER + 1
OFF_URL = OFF_SCHEME + 1


def encode_url(url: str) -> bytes | None:
    """Compress a URL into a scheme byte plus encoded body.

    Returns None if the URL has no known scheme, contains characters that
    cannot be transmitted, or does not fit in 17 bytes.
    """
    # Longest prefixes first so "https://www." wins over "https://"
    for code, prefix in sorted(URL_SCHEMES.items(), key=lambda item: -len(item[1])):
        if url.startswith(prefix):
            scheme = code
            rest = url[len(prefix):]
            break
    else:
        return None

    expansions = sorted(URL_EXPANSIONS.items(), key=lambda item: -len(item[1]))
    body = bytearray()
    i = 0
    while i < len(rest):
        for code, text in expansions:
            if rest.startswith(text, i):
                body.append(code)
                i += len(text)
                break
        else:
            char = ord(rest[i])
            if not 0x21 <= char <= 0x7E:
                return None
            body.append(char)
            i += 1

    if not body or len(body) > MAX_ENCODED_URL:
        return None
    return bytes([scheme]) + bytes(body)


def decode_url(data: bytes) -> str | None:
    """Expand a scheme byte plus encoded body back into a URL.

    Returns None if the scheme is unknown or a byte is not transmittable.
    """
    if not data or data[0] not in URL_SCHEMES:
        return None
    parts = [URL_SCHEMES[data[0]]]
    for b in data[1:]:
        if b in URL_EXPANSIONS:
            parts.append(URL_EXPANSIONS[b])
        elif 0x21 <= b <= 0x7E:
            parts.append(chr(b))
        else:
            return None
    return "".join(parts)


@dataclass
class UrlFields(FrameFields):
    """Decoded Eddystone-URL fields."""

    tx_power: int = 0
    url: str | None = None


class UrlFrame(BeaconFrame):
    """An Eddystone-URL frame: Tx power and a compressed URL."""

    KIND: ClassVar[str] = "url"
    FIELDS: ClassVar[type[FrameFields]] = UrlFields

    tx_power = FrameField()
    url = FrameField()

    @classmethod
    def check_payload(cls, payload: bytes | None) -> bool:
        if not super().check_payload(payload):
            return False
        if get_eddystone_frame_type(payload) != EddystoneFrameType.URL:
            return False
        if not OFF_URL < len(payload) <= OFF_URL + MAX_ENCODED_URL:
            return False
        return decode_url(payload[OFF_SCHEME:]) is not None

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        if not UrlFrame.check_payload(payload):
            logger.debug("Ignoring invalid URL payload: %s", payload.hex(" "))
            return {}
        return {
            "tx_power": signed_byte(payload[OFF_TX_POWER]),
            "url": decode_url(payload[OFF_SCHEME:]),
        }

    @staticmethod
    def encode(fields: UrlFields) -> bytes:
        if fields.url is None:
            return b""
        encoded = encode_url(fields.url)
        if encoded is None:
            return b""
        return (
            build_eddystone_header(EddystoneFrameType.URL)
            + bytes([unsigned_byte(fields.tx_power)])
            + encoded
        )
