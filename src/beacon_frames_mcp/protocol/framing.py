"""Frame headers shared by every beacon frame variant.

Header layout::

    +---------------+------------+---------------------------------+
    | Magic         | Frame type |        Variant-specific         |
    | 2 bytes       | 1 byte     |        variable length          |
    +---------------+------------+---------------------------------+

- Eddystone magic: 0xAA 0xFE, frame type 0x00 (UID), 0x10 (URL), 0x20 (TLM)
- Estimote Telemetry magic: 0x9A 0xFE, frame type 0x12. The lower nibble
  (0x2) identifies a telemetry frame, the upper nibble carries the
  telemetry protocol version. Other ``0x?2`` bytes (0x02, 0x22, ...) are
  accepted as telemetry so that every protocol version reaches the decoder.
"""

from __future__ import annotations

from enum import IntEnum

EDDYSTONE_MAGIC = b"\xAA\xFE"
TELEMETRY_MAGIC = b"\x9A\xFE"

EDDYSTONE_HEADER_SIZE = 3  # magic (2) + frame type (1)
TELEMETRY_HEADER_SIZE = 3  # magic (2) + frame type (1)
HEADER_SIZE = 3

TELEMETRY_TYPE_MASK = 0x0F
TELEMETRY_VERSION_MASK = 0xF0


class EddystoneFrameType(IntEnum):
    """Eddystone frame type identifiers (byte 2)."""

    UID = 0x00
    URL = 0x10
    TLM = 0x20


class TelemetryFrameType(IntEnum):
    """Estimote frame type identifiers (byte 2)."""

    ESTIMOTE = 0x12


# Lower nibble of byte 2 shared by every Estimote Telemetry protocol version
ESTIMOTE_TELEMETRY_NIBBLE = TelemetryFrameType.ESTIMOTE & TELEMETRY_TYPE_MASK


def has_eddystone_header(payload: bytes | None) -> bool:
    """True if the payload starts with the Eddystone magic and has a type byte.

    Does not check whether the frame type is known.
    """
    return (
        payload is not None
        and len(payload) >= EDDYSTONE_HEADER_SIZE
        and payload[:2] == EDDYSTONE_MAGIC
    )


def has_telemetry_header(payload: bytes | None) -> bool:
    """True if the payload starts with the Estimote magic and has a type byte."""
    return (
        payload is not None
        and len(payload) >= TELEMETRY_HEADER_SIZE
        and payload[:2] == TELEMETRY_MAGIC
    )


def get_eddystone_frame_type(payload: bytes | None) -> EddystoneFrameType | None:
    """Return the Eddystone frame type, or None if missing or undefined."""
    if not has_eddystone_header(payload):
        return None
    try:
        return EddystoneFrameType(payload[2])
    except ValueError:
        return None


def is_estimote_telemetry(payload: bytes | None) -> bool:
    """True if the payload carries an Estimote Telemetry frame of any version."""
    return (
        has_telemetry_header(payload)
        and payload[2] & TELEMETRY_TYPE_MASK == ESTIMOTE_TELEMETRY_NIBBLE
    )


def build_eddystone_header(frame_type: EddystoneFrameType) -> bytes:
    """Build the 3-byte Eddystone header ``AA FE <type>``."""
    return EDDYSTONE_MAGIC + bytes([frame_type.value])


def build_telemetry_header(protocol_version: int | None = None) -> bytes:
    """Build the 3-byte Estimote Telemetry header ``9A FE <type>``.

    Args:
        protocol_version: Telemetry protocol version stored in the upper
            nibble of the type byte. Defaults to the canonical 0x12 byte.
    """
    if protocol_version is None:
        return TELEMETRY_MAGIC + bytes([TelemetryFrameType.ESTIMOTE.value])
    if not 0 <= protocol_version <= 0x0F:
        raise ValueError(f"Protocol version must be 0-15, got {protocol_version}")
    return TELEMETRY_MAGIC + bytes([(protocol_version << 4) | ESTIMOTE_TELEMETRY_NIBBLE])
