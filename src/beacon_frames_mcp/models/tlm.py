"""Eddystone-TLM frame (unencrypted, version 0x00).

Layout::

    +---------+------+---------+---------+---------+----------+----------+
    | AA FE   | 0x20 | Version | VBATT   | TEMP    | ADV_CNT  | SEC_CNT  |
    | 2 bytes | 1 B  | 1 byte  | 2 bytes | 2 bytes | 4 bytes  | 4 bytes  |
    +---------+------+---------+---------+---------+----------+----------+

All multi-byte values are big-endian.

- VBATT: battery voltage in mV, 0 if not supported
- TEMP: signed 8.8 fixed point degrees Celsius, 0x8000 if not supported
- ADV_CNT: advertising PDUs sent since power-up or reboot
- SEC_CNT: time since power-up or reboot in 0.1 s units
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
from ..utils.bits import signed_n
from .base import BeaconFrame, FrameField, FrameFields

logger = logging.getLogger(__name__)

TLM_VERSION = 0x00
TLM_LENGTH = EDDYSTONE_HEADER_SIZE + 13

VOLTAGE_UNSUPPORTED = 0
TEMPERATURE_UNSUPPORTED = 0x8000

OFF_VERSION = EDDYSTONE_HEADER_SIZE
OFF_VBATT = OFF_VERSION + 1
OFF_TEMP = OFF_VBATT + 2
OFF_ADV_CNT = OFF_TEMP + 2
OFF_SEC_CNT = OFF_ADV_CNT + 4


@dataclass
class TlmFields(FrameFields):
    """Decoded Eddystone-TLM fields."""

    version: int = TLM_VERSION
    battery_voltage: int | None = None
    temperature: float | None = None
    advertisement_count: int = 0
    seconds_since_boot: float = 0.0


class TlmFrame(BeaconFrame):
    """An Eddystone-TLM frame: beacon health telemetry."""

    KIND: ClassVar[str] = "tlm"
    FIELDS: ClassVar[type[FrameFields]] = TlmFields

    version = FrameField()
    battery_voltage = FrameField()
    temperature = FrameField()
    advertisement_count = FrameField()
    seconds_since_boot = FrameField()

    @classmethod
    def check_payload(cls, payload: bytes | None) -> bool:
        if not super().check_payload(payload):
            return False
        if get_eddystone_frame_type(payload) != EddystoneFrameType.TLM:
            return False
        return len(payload) == TLM_LENGTH and payload[OFF_VERSION] == TLM_VERSION

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        if not TlmFrame.check_payload(payload):
            logger.debug("Ignoring invalid TLM payload: %s", payload.hex(" "))
            return {}

        vbatt = int.from_bytes(payload[OFF_VBATT : OFF_VBATT + 2], "big")
        temp = int.from_bytes(payload[OFF_TEMP : OFF_TEMP + 2], "big")
        adv_cnt = int.from_bytes(payload[OFF_ADV_CNT : OFF_ADV_CNT + 4], "big")
        sec_cnt = int.from_bytes(payload[OFF_SEC_CNT : OFF_SEC_CNT + 4], "big")

        return {
            "version": payload[OFF_VERSION],
            "battery_voltage": None if vbatt == VOLTAGE_UNSUPPORTED else vbatt,
            "temperature": (
                None if temp == TEMPERATURE_UNSUPPORTED else signed_n(temp, 16) / 256.0
            ),
            "advertisement_count": adv_cnt,
            "seconds_since_boot": sec_cnt / 10.0,
        }

    @staticmethod
    def encode(fields: TlmFields) -> bytes:
        if fields.version != TLM_VERSION:
            return b""
        vbatt = fields.battery_voltage or VOLTAGE_UNSUPPORTED
        if fields.temperature is None:
            temp = TEMPERATURE_UNSUPPORTED
        else:
            temp = round(fields.temperature * 256) & 0xFFFF
        return (
            build_eddystone_header(EddystoneFrameType.TLM)
            + bytes([fields.version])
            + (vbatt & 0xFFFF).to_bytes(2, "big")
            + temp.to_bytes(2, "big")
            + (fields.advertisement_count & 0xFFFFFFFF).to_bytes(4, "big")
            + (round(fields.seconds_since_boot * 10) & 0xFFFFFFFF).to_bytes(4, "big")
        )
