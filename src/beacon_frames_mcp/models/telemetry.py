"""Estimote Telemetry frame.

The telemetry data does not fit in one advertisement, so beacons alternate
between two subframes, "A" and "B". Both share a 12-byte prefix::

    +---------+------------------+------------------+----------+------------+
    | 9A FE   | Type / version   | Short identifier | Subframe | Subframe   |
    | 2 bytes | 1 byte           | 8 bytes          | 1 byte   | 10 bytes   |
    +---------+------------------+------------------+----------+------------+

Byte 2 holds the frame type (lower nibble, always 0x2) and the telemetry
protocol version (upper nibble). Byte 11 holds the subframe type in its
lower 2 bits.

Subframe A (offsets relative to payload start)::

    12-14  acceleration X/Y/Z, signed, raw * 2 / 127.0 = g
    15     previous motion state duration (number + unit)
    16     current motion state duration (number + unit)
    17     bit 0 motion state, bits 2-3 error flags (v2), bits 4-7 GPIO
    18     bits 0-1 error flags (v1)
    18-21  atmospheric pressure, little-endian, raw / 256.0 = Pa (v2)

Subframe B::

    12-14  magnetic field X/Y/Z, signed, raw * 2 / 128.0, 0 if uncalibrated
    15     ambient light, 2 ** upper nibble * lower nibble * 0.72 = lux
    16-17  uptime: 12-bit number (byte 16 + low nibble of 17), unit bits 4-5
    17-19  temperature: 12-bit signed, raw / 16.0 = degrees Celsius
    19-20  battery voltage: 14-bit mV, 0x3FFF if not measured yet
    21     battery level in percent, 0xFF if not measured yet (v1+);
           error flags in bits 0-1 (v0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from numbers import Real
from typing import Any, ClassVar

from ..protocol.framing import (
    TELEMETRY_HEADER_SIZE,
    TELEMETRY_VERSION_MASK,
    build_telemetry_header,
    is_estimote_telemetry,
)
from ..utils.bits import (
    bits,
    inject_bits,
    le_uint32,
    shifted_bits,
    signed_byte,
    signed_n,
    unsigned_byte,
)
from .base import BeaconFrame, FrameField, FrameFields

logger = logging.getLogger(__name__)

MAX_PROTOCOL_VERSION = 2
TELEMETRY_LENGTH = TELEMETRY_HEADER_SIZE + 19
SHORT_IDENTIFIER_SIZE = 8

# Offsets within the payload
OFF_TYPE = 2
OFF_IDENTIFIER = 3
OFF_SUBFRAME = 11
OFF_VECTOR = 12
OFF_PREVIOUS_MOTION = 15
OFF_CURRENT_MOTION = 16
OFF_STATE = 17
OFF_ERRORS_V1 = 18
OFF_PRESSURE = 18
OFF_LIGHT = 15
OFF_UPTIME = 16
OFF_UPTIME_HIGH = 17
OFF_TEMPERATURE_LOW = 17
OFF_TEMPERATURE_MID = 18
OFF_TEMPERATURE_HIGH = 19
OFF_VOLTAGE_LOW = 19
OFF_VOLTAGE_HIGH = 20
OFF_BATTERY = 21

SUBFRAME_MASK = 0b0000_0011
MOTION_STATE_MASK = 0b0000_0011
GPIO_MASKS = (0b0001_0000, 0b0010_0000, 0b0100_0000, 0b1000_0000)
V2_FIRMWARE_ERROR = 0b0000_0100
V2_CLOCK_ERROR = 0b0000_1000
FIRMWARE_ERROR = 0b0000_0001
CLOCK_ERROR = 0b0000_0010

DURATION_NUMBER_MASK = 0b0011_1111
DURATION_UNIT_MASK = 0b1100_0000
WEEKS_OFFSET = 32

LIGHT_EXPONENT_MASK = 0b1111_0000
LIGHT_MANTISSA_MASK = 0b0000_1111
LIGHT_SCALE = 0.72

UPTIME_HIGH_MASK = 0b0000_1111
UPTIME_UNIT_MASK = 0b0011_0000
TEMPERATURE_LOW_MASK = 0b1100_0000
TEMPERATURE_HIGH_MASK = 0b0000_0011
VOLTAGE_LOW_MASK = 0b1111_1100

ACCELERATION_DIVISOR = 127.0
MAGNETIC_DIVISOR = 128.0
TEMPERATURE_DIVISOR = 16.0
PRESSURE_DIVISOR = 256.0

VOLTAGE_UNMEASURED = 0x3FFF
BATTERY_UNMEASURED = 0xFF
PRESSURE_UNMEASURED = 0xFFFFFFFF

Vector = tuple[float, float, float]


class SubframeType(IntEnum):
    """Telemetry subframe identifiers (lower 2 bits of byte 11)."""

    A = 0
    B = 1


class TimeUnit(str, Enum):
    """Units used by motion state durations and uptime."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"


UNIT_CODES = {
    0: TimeUnit.SECONDS,
    1: TimeUnit.MINUTES,
    2: TimeUnit.HOURS,
    3: TimeUnit.DAYS,
}
UNIT_CODE_BY_UNIT = {unit: code for code, unit in UNIT_CODES.items()}


@dataclass(frozen=True)
class Duration:
    """A number paired with a time unit, e.g. ``12 minutes``."""

    number: int
    unit: TimeUnit

    def to_dict(self) -> dict:
        return {"number": self.number, "unit": self.unit.value}

    def __str__(self) -> str:
        return f"{self.number} {self.unit.value}"


def decode_motion_duration(value: int) -> Duration:
    """Decode a motion state duration byte.

    Lower 6 bits are the number, upper 2 bits the unit. Unit code 3 means
    days when the number is below 32, otherwise ``number - 32`` weeks.
    """
    number = bits(value, DURATION_NUMBER_MASK)
    unit_code = shifted_bits(value, DURATION_UNIT_MASK)
    if unit_code == 3 and number >= WEEKS_OFFSET:
        return Duration(number - WEEKS_OFFSET, TimeUnit.WEEKS)
    return Duration(number, UNIT_CODES[unit_code])


def encode_motion_duration(duration: Duration | None) -> int:
    """Encode a motion state duration back into its byte."""
    if duration is None:
        return 0
    if duration.unit == TimeUnit.WEEKS:
        number = min(duration.number, DURATION_NUMBER_MASK - WEEKS_OFFSET) + WEEKS_OFFSET
        return inject_bits(number, DURATION_UNIT_MASK, 3)
    limit = WEEKS_OFFSET - 1 if duration.unit == TimeUnit.DAYS else DURATION_NUMBER_MASK
    number = min(duration.number, limit)
    return inject_bits(number, DURATION_UNIT_MASK, UNIT_CODE_BY_UNIT[duration.unit])


def decode_ambient_light(value: int) -> float:
    """Ambient light in lux from the exponent/mantissa byte."""
    exponent = shifted_bits(value, LIGHT_EXPONENT_MASK)
    mantissa = bits(value, LIGHT_MANTISSA_MASK)
    return 2 ** exponent * mantissa * LIGHT_SCALE


def encode_ambient_light(lux: float | None) -> int:
    """Pick the exponent/mantissa byte closest to ``lux``."""
    if lux is None:
        return 0
    best = 0
    best_error = abs(lux)
    for value in range(256):
        error = abs(decode_ambient_light(value) - lux)
        if error < best_error:
            best, best_error = value, error
    return best


def decode_vector(data: bytes, divisor: float) -> Vector:
    return tuple(signed_byte(b) * 2 / divisor for b in data)


def encode_vector(vector: Vector | None, divisor: float) -> bytes:
    if vector is None:
        return b"\x00\x00\x00"
    raw = [max(-128, min(127, round(v * divisor / 2))) for v in vector]
    return bytes(unsigned_byte(r) for r in raw)


def is_vector(value: Any) -> bool:
    """True if ``value`` is exactly three real numbers."""
    return (
        isinstance(value, (tuple, list))
        and len(value) == 3
        and all(isinstance(v, Real) and not isinstance(v, bool) for v in value)
    )


def format_vector(vector: Vector | None) -> str | None:
    """Render a vector as ``{x; y; z}``."""
    if vector is None:
        return None
    return "{" + "; ".join(str(v) for v in vector) + "}"


def error_message(firmware_error: bool, clock_error: bool) -> str | None:
    if firmware_error and clock_error:
        return "Firmware & clock error"
    if firmware_error:
        return "Firmware error"
    if clock_error:
        return "Clock error"
    return None


def _error_values(firmware_error: bool, clock_error: bool) -> dict[str, Any]:
    return {
        "has_firmware_error": firmware_error,
        "has_clock_error": clock_error,
        "error_message": error_message(firmware_error, clock_error),
    }


@dataclass
class TelemetryFields(FrameFields):
    """Decoded Estimote Telemetry fields.

    Fields that a subframe does not carry keep their previous value, so a
    frame updated with alternating A and B subframes holds both halves.
    """

    protocol_version: int = 0
    short_identifier: str | None = None
    subframe_type: int = SubframeType.A
    # Subframe A
    acceleration: Vector | None = None
    is_moving: bool = False
    previous_motion_duration: Duration | None = None
    current_motion_duration: Duration | None = None
    has_firmware_error: bool = False
    has_clock_error: bool = False
    error_message: str | None = None
    pressure: float | None = None
    # Subframe B
    magnetic_field: Vector | None = None
    ambient_light: float | None = None
    uptime: Duration | None = None
    temperature: float | None = None
    battery_voltage: int | None = None
    battery_level: int | None = None


class TelemetryFrame(BeaconFrame):
    """An Estimote Telemetry frame (subframe A or B, protocol versions 0-2)."""

    KIND: ClassVar[str] = "estimote_telemetry"
    FIELDS: ClassVar[type[FrameFields]] = TelemetryFields
    DERIVED: ClassVar[dict[str, tuple[str, ...]]] = {
        "acceleration": ("acceleration_text",),
        "magnetic_field": ("magnetic_field_text",),
    }

    protocol_version = FrameField()
    short_identifier = FrameField()
    subframe_type = FrameField()
    acceleration = FrameField()
    is_moving = FrameField()
    previous_motion_duration = FrameField()
    current_motion_duration = FrameField()
    has_firmware_error = FrameField()
    has_clock_error = FrameField()
    error_message = FrameField()
    pressure = FrameField()
    magnetic_field = FrameField()
    ambient_light = FrameField()
    uptime = FrameField()
    temperature = FrameField()
    battery_voltage = FrameField()
    battery_level = FrameField()

    @property
    def acceleration_text(self) -> str | None:
        return format_vector(self.acceleration)

    @property
    def magnetic_field_text(self) -> str | None:
        return format_vector(self.magnetic_field)

    @property
    def beacon_id(self) -> str | None:
        return self.short_identifier

    @classmethod
    def check_payload(cls, payload: bytes | None) -> bool:
        """Check magic, telemetry frame type and length."""
        if not super().check_payload(payload):
            return False
        if not is_estimote_telemetry(payload):
            return False
        return len(payload) == TELEMETRY_LENGTH

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        if not TelemetryFrame.check_payload(payload):
            logger.debug("Ignoring invalid telemetry payload: %s", payload.hex(" "))
            return {}

        version = shifted_bits(payload[OFF_TYPE], TELEMETRY_VERSION_MASK)
        values: dict[str, Any] = {"protocol_version": version}
        if version > MAX_PROTOCOL_VERSION:
            logger.debug("Unsupported telemetry protocol version %d", version)
            return values

        values["short_identifier"] = (
            payload[OFF_IDENTIFIER : OFF_IDENTIFIER + SHORT_IDENTIFIER_SIZE].hex().upper()
        )
        subframe = bits(payload[OFF_SUBFRAME], SUBFRAME_MASK)
        values["subframe_type"] = subframe

        if subframe == SubframeType.A:
            values.update(_decode_subframe_a(payload, version))
        elif subframe == SubframeType.B:
            values.update(_decode_subframe_b(payload, version))
        else:
            logger.debug("Unknown telemetry subframe type %d", subframe)
        return values

    @staticmethod
    def encode(fields: TelemetryFields) -> bytes:
        if not 0 <= fields.protocol_version <= MAX_PROTOCOL_VERSION:
            return b""
        if fields.subframe_type not in (SubframeType.A, SubframeType.B):
            return b""
        try:
            identifier = bytes.fromhex(fields.short_identifier or "")
        except ValueError:
            return b""
        if len(identifier) != SHORT_IDENTIFIER_SIZE:
            return b""
        for vector in (fields.acceleration, fields.magnetic_field):
            if vector is not None and not is_vector(vector):
                return b""

        buf = bytearray(TELEMETRY_LENGTH)
        buf[:TELEMETRY_HEADER_SIZE] = build_telemetry_header(fields.protocol_version)
        buf[OFF_IDENTIFIER : OFF_IDENTIFIER + SHORT_IDENTIFIER_SIZE] = identifier
        buf[OFF_SUBFRAME] = fields.subframe_type

        if fields.subframe_type == SubframeType.A:
            _encode_subframe_a(buf, fields)
        else:
            _encode_subframe_b(buf, fields)
        return bytes(buf)


def _decode_subframe_a(payload: bytes, version: int) -> dict[str, Any]:
    values: dict[str, Any] = {
        "acceleration": decode_vector(
            payload[OFF_VECTOR : OFF_VECTOR + 3], ACCELERATION_DIVISOR
        ),
        # 0b00 when still, 0b01 when moving
        "is_moving": bits(payload[OFF_STATE], MOTION_STATE_MASK) == 1,
        "previous_motion_duration": decode_motion_duration(payload[OFF_PREVIOUS_MOTION]),
        "current_motion_duration": decode_motion_duration(payload[OFF_CURRENT_MOTION]),
    }

    gpio = [shifted_bits(payload[OFF_STATE], mask) for mask in GPIO_MASKS]
    logger.debug("GPIO pin states: %s", ", ".join("high" if p else "low" for p in gpio))

    if version == 2:
        values.update(_error_values(
            shifted_bits(payload[OFF_STATE], V2_FIRMWARE_ERROR) == 1,
            shifted_bits(payload[OFF_STATE], V2_CLOCK_ERROR) == 1,
        ))
        raw = le_uint32(payload, OFF_PRESSURE)
        values["pressure"] = None if raw == PRESSURE_UNMEASURED else raw / PRESSURE_DIVISOR
    elif version == 1:
        values.update(_error_values(
            shifted_bits(payload[OFF_ERRORS_V1], FIRMWARE_ERROR) == 1,
            shifted_bits(payload[OFF_ERRORS_V1], CLOCK_ERROR) == 1,
        ))
    # version 0 carries its error flags in subframe B
    return values


def _decode_subframe_b(payload: bytes, version: int) -> dict[str, Any]:
    values: dict[str, Any] = {
        "magnetic_field": decode_vector(
            payload[OFF_VECTOR : OFF_VECTOR + 3], MAGNETIC_DIVISOR
        ),
        "ambient_light": decode_ambient_light(payload[OFF_LIGHT]),
    }

    uptime_unit = UNIT_CODES[shifted_bits(payload[OFF_UPTIME_HIGH], UPTIME_UNIT_MASK)]
    uptime = (bits(payload[OFF_UPTIME_HIGH], UPTIME_HIGH_MASK) << 8) | payload[OFF_UPTIME]
    values["uptime"] = Duration(uptime, uptime_unit)

    raw_temperature = (
        (bits(payload[OFF_TEMPERATURE_HIGH], TEMPERATURE_HIGH_MASK) << 10)
        | (payload[OFF_TEMPERATURE_MID] << 2)
        | shifted_bits(payload[OFF_TEMPERATURE_LOW], TEMPERATURE_LOW_MASK)
    )
    values["temperature"] = signed_n(raw_temperature, 12) / TEMPERATURE_DIVISOR

    raw_voltage = (payload[OFF_VOLTAGE_HIGH] << 6) | shifted_bits(
        payload[OFF_VOLTAGE_LOW], VOLTAGE_LOW_MASK
    )
    values["battery_voltage"] = None if raw_voltage == VOLTAGE_UNMEASURED else raw_voltage

    if version == 0:
        values.update(_error_values(
            shifted_bits(payload[OFF_BATTERY], FIRMWARE_ERROR) == 1,
            shifted_bits(payload[OFF_BATTERY], CLOCK_ERROR) == 1,
        ))
    else:
        level = payload[OFF_BATTERY]
        values["battery_level"] = None if level == BATTERY_UNMEASURED else level
    return values


def _encode_subframe_a(buf: bytearray, fields: TelemetryFields) -> None:
    buf[OFF_VECTOR : OFF_VECTOR + 3] = encode_vector(fields.acceleration, ACCELERATION_DIVISOR)
    buf[OFF_PREVIOUS_MOTION] = encode_motion_duration(fields.previous_motion_duration)
    buf[OFF_CURRENT_MOTION] = encode_motion_duration(fields.current_motion_duration)

    state = 1 if fields.is_moving else 0
    if fields.protocol_version == 2:
        state = inject_bits(state, V2_FIRMWARE_ERROR, int(fields.has_firmware_error))
        state = inject_bits(state, V2_CLOCK_ERROR, int(fields.has_clock_error))
        if fields.pressure is None:
            pressure = PRESSURE_UNMEASURED
        else:
            pressure = round(fields.pressure * PRESSURE_DIVISOR) & 0xFFFFFFFF
        buf[OFF_PRESSURE : OFF_PRESSURE + 4] = pressure.to_bytes(4, "little")
    elif fields.protocol_version == 1:
        errors = inject_bits(0, FIRMWARE_ERROR, int(fields.has_firmware_error))
        buf[OFF_ERRORS_V1] = inject_bits(errors, CLOCK_ERROR, int(fields.has_clock_error))
    buf[OFF_STATE] = state


def _encode_subframe_b(buf: bytearray, fields: TelemetryFields) -> None:
    buf[OFF_VECTOR : OFF_VECTOR + 3] = encode_vector(fields.magnetic_field, MAGNETIC_DIVISOR)
    buf[OFF_LIGHT] = encode_ambient_light(fields.ambient_light)

    uptime = fields.uptime
    if uptime is not None and uptime.unit == TimeUnit.WEEKS:
        uptime = Duration(uptime.number * 7, TimeUnit.DAYS)
    number = min(uptime.number, 0xFFF) if uptime is not None else 0
    unit_code = UNIT_CODE_BY_UNIT[uptime.unit] if uptime is not None else 0
    buf[OFF_UPTIME] = number & 0xFF
    high = inject_bits(0, UPTIME_HIGH_MASK, number >> 8)
    high = inject_bits(high, UPTIME_UNIT_MASK, unit_code)

    temperature = 0
    if fields.temperature is not None:
        temperature = round(fields.temperature * TEMPERATURE_DIVISOR) & 0xFFF
    buf[OFF_TEMPERATURE_LOW] = inject_bits(high, TEMPERATURE_LOW_MASK, temperature & 0b11)
    buf[OFF_TEMPERATURE_MID] = (temperature >> 2) & 0xFF

    voltage = VOLTAGE_UNMEASURED if fields.battery_voltage is None else fields.battery_voltage
    voltage &= VOLTAGE_UNMEASURED
    low = inject_bits(0, TEMPERATURE_HIGH_MASK, temperature >> 10)
    buf[OFF_VOLTAGE_LOW] = inject_bits(low, VOLTAGE_LOW_MASK, voltage & 0b11_1111)
    buf[OFF_VOLTAGE_HIGH] = voltage >> 6

    if fields.protocol_version == 0:
        errors = inject_bits(0, FIRMWARE_ERROR, int(fields.has_firmware_error))
        buf[OFF_BATTERY] = inject_bits(errors, CLOCK_ERROR, int(fields.has_clock_error))
    else:
        level = BATTERY_UNMEASURED if fields.battery_level is None else fields.battery_level
        buf[OFF_BATTERY] = level & 0xFF
