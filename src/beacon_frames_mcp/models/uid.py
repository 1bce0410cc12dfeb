"""Eddystone-UID frame.

Layout (offsets relative to payload start)::

    +---------+------+---------+--------------+-------------+--------+
    | AA FE   | 0x00 | Ranging | Namespace ID | Instance ID | RFU    |
    | 2 bytes | 1 B  | 1 byte  | 10 bytes     | 6 bytes     | 2 B    |
    +---------+------+---------+--------------+-------------+--------+

Ranging data is the calibrated Tx power at 0 m in dBm (signed 8-bit,
-100..+20). The RFU bytes must be zero but some transmitters omit them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from ..exceptions import BeaconError
from ..protocol.framing import (
    EDDYSTONE_HEADER_SIZE,
    EddystoneFrameType,
    build_eddystone_header,
    get_eddystone_frame_type,
)
from ..utils.bits import le_uint, le_uint48, signed_byte, unsigned_byte
from .base import BeaconFrame, FrameField, FrameFields

logger = logging.getLogger(__name__)

NAMESPACE_ID_SIZE = 10
INSTANCE_ID_SIZE = 6
RFU = b"\x00\x00"

OFF_RANGING = EDDYSTONE_HEADER_SIZE
OFF_NAMESPACE = OFF_RANGING + 1
OFF_INSTANCE = OFF_NAMESPACE + NAMESPACE_ID_SIZE

UID_LENGTH_NO_RFU = EDDYSTONE_HEADER_SIZE + 17
UID_LENGTH = UID_LENGTH_NO_RFU + len(RFU)


@dataclass
class UidFields(FrameFields):
    """Decoded Eddystone-UID fields."""

    ranging_data: int = 0
    namespace_id: bytes | None = None
    instance_id: bytes | None = None


class UidFrame(BeaconFrame):
    """An Eddystone-UID frame: ranging power, namespace and instance ID."""

    KIND: ClassVar[str] = "uid"
    FIELDS: ClassVar[type[FrameFields]] = UidFields
    DERIVED: ClassVar[dict[str, tuple[str, ...]]] = {
        "namespace_id": ("namespace_id_as_number",),
        "instance_id": ("instance_id_as_number",),
    }

    ranging_data = FrameField()
    namespace_id = FrameField()
    instance_id = FrameField()

    @classmethod
    def from_fields(cls, *, on_change=None, **values: Any) -> UidFrame:
        """Create a UID frame from its fields.

        Raises:
            BeaconError: If an ID is given with the wrong length.
        """
        for name, size in (("namespace_id", NAMESPACE_ID_SIZE), ("instance_id", INSTANCE_ID_SIZE)):
            value = values.get(name)
            if value is not None:
                if len(value) != size:
                    raise BeaconError(f"{name} must be {size} bytes, got {len(value)}")
                values[name] = bytes(value)
        return super().from_fields(on_change=on_change, **values)

    def set(self, **values: Any) -> list[str]:
        for name in ("namespace_id", "instance_id"):
            if values.get(name) is not None:
                values[name] = bytes(values[name])
        return super().set(**values)

    @property
    def namespace_id_as_number(self) -> int | None:
        """Namespace ID as an unsigned 80-bit number, most significant byte first."""
        if self.namespace_id is None:
            return None
        return le_uint(self.namespace_id[::-1])

    @property
    def instance_id_as_number(self) -> int | None:
        """Instance ID as an unsigned 48-bit number, most significant byte first."""
        if self.instance_id is None:
            return None
        return le_uint48(self.instance_id[::-1])

    @property
    def beacon_id(self) -> str | None:
        if self.namespace_id is None or self.instance_id is None:
            return None
        return self.namespace_id.hex() + self.instance_id.hex()

    @classmethod
    def check_payload(cls, payload: bytes | None) -> bool:
        """Check header, frame type and length (with or without RFU bytes)."""
        if not super().check_payload(payload):
            return False
        if get_eddystone_frame_type(payload) != EddystoneFrameType.UID:
            return False
        return len(payload) in (UID_LENGTH_NO_RFU, UID_LENGTH)

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        if not UidFrame.check_payload(payload):
            logger.debug("Ignoring invalid UID payload: %s", payload.hex(" "))
            return {}
        return {
            "ranging_data": signed_byte(payload[OFF_RANGING]),
            "namespace_id": bytes(payload[OFF_NAMESPACE : OFF_NAMESPACE + NAMESPACE_ID_SIZE]),
            "instance_id": bytes(payload[OFF_INSTANCE : OFF_INSTANCE + INSTANCE_ID_SIZE]),
        }

    @staticmethod
    def encode(fields: UidFields) -> bytes:
        if (
            fields.namespace_id is None
            or len(fields.namespace_id) != NAMESPACE_ID_SIZE
            or fields.instance_id is None
            or len(fields.instance_id) != INSTANCE_ID_SIZE
        ):
            return b""
        return (
            build_eddystone_header(EddystoneFrameType.UID)
            + bytes([unsigned_byte(fields.ranging_data)])
            + fields.namespace_id
            + fields.instance_id
            + RFU
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["fields"]["namespace_id_as_number"] = self.namespace_id_as_number
        d["fields"]["instance_id_as_number"] = self.instance_id_as_number
        return d
