"""Tests for the Estimote Telemetry frame codec."""

import pytest

from beacon_frames_mcp.models.telemetry import (
    Duration,
    SubframeType,
    TelemetryFrame,
    TimeUnit,
    decode_ambient_light,
    decode_motion_duration,
    encode_ambient_light,
    encode_motion_duration,
    error_message,
    format_vector,
    is_vector,
)

IDENTIFIER = "0123456789ABCDEF"

# v2 subframe A: accel 2g on every axis, 5 minutes previous, 5 weeks current,
# moving with a firmware error and GPIO 0/1 high, 100000 Pa
PAYLOAD_A = bytes.fromhex(
    "9AFE22" "0123456789ABCDEF" "00" "7F7F7F" "45" "E5" "35" "00A08601"
)

# v1 subframe B: magnetic field (1, -1, 0), maximum light, 300 minutes uptime,
# 22.5 degrees, 3000 mV, 87 %
PAYLOAD_B = bytes.fromhex(
    "9AFE12" "0123456789ABCDEF" "01" "40C000" "FF" "2C" "11" "5A" "E0" "2E" "57"
)


def _with(payload, **changes):
    """Copy a payload with some bytes replaced, keyed as b<offset>."""
    buf = bytearray(payload)
    for key, value in changes.items():
        buf[int(key[1:])] = value
    return bytes(buf)


def test_payload_sizes():
    """Both sample payloads are full-length frames."""
    assert len(PAYLOAD_A) == 22
    assert len(PAYLOAD_B) == 22
    assert TelemetryFrame(PAYLOAD_A).is_valid()


def test_decode_subframe_a_v2():
    """Motion, error flags and pressure from a v2 subframe A."""
    frame = TelemetryFrame(PAYLOAD_A)
    assert frame.protocol_version == 2
    assert frame.short_identifier == IDENTIFIER
    assert frame.beacon_id == IDENTIFIER
    assert frame.subframe_type == SubframeType.A
    assert frame.acceleration == (2.0, 2.0, 2.0)
    assert frame.acceleration_text == "{2.0; 2.0; 2.0}"
    assert frame.is_moving is True
    assert frame.previous_motion_duration == Duration(5, TimeUnit.MINUTES)
    assert frame.current_motion_duration == Duration(5, TimeUnit.WEEKS)
    assert frame.has_firmware_error is True
    assert frame.has_clock_error is False
    assert frame.error_message == "Firmware error"
    assert frame.pressure == 100000.0
    # Subframe B fields are not carried by A
    assert frame.temperature is None
    assert frame.magnetic_field is None


def test_encode_subframe_a_drops_gpio():
    """Re-encoding reproduces the payload except the GPIO bits."""
    frame = TelemetryFrame(PAYLOAD_A)
    assert TelemetryFrame.encode(frame.fields) == _with(PAYLOAD_A, b17=0x05)


def test_unmeasured_pressure():
    """All-ones pressure bytes mean not measured."""
    payload = PAYLOAD_A[:18] + b"\xFF\xFF\xFF\xFF"
    frame = TelemetryFrame(payload)
    assert frame.pressure is None
    assert TelemetryFrame.encode(frame.fields)[18:] == b"\xFF\xFF\xFF\xFF"


def test_decode_subframe_a_v1_errors():
    """Version 1 keeps its error flags in byte 18."""
    payload = _with(PAYLOAD_A, b2=0x12, b17=0x00, b18=0x02)
    frame = TelemetryFrame(payload)
    assert frame.protocol_version == 1
    assert frame.is_moving is False
    assert frame.has_firmware_error is False
    assert frame.has_clock_error is True
    assert frame.error_message == "Clock error"
    assert frame.pressure is None


def test_decode_subframe_a_v0_has_no_errors():
    """Version 0 subframe A carries no error flags."""
    frame = TelemetryFrame(_with(PAYLOAD_A, b2=0x02))
    assert frame.protocol_version == 0
    assert frame.has_firmware_error is False
    assert frame.error_message is None
    assert frame.pressure is None


def test_decode_subframe_b_v1():
    """Environment and battery values from a v1 subframe B."""
    frame = TelemetryFrame(PAYLOAD_B)
    assert frame.protocol_version == 1
    assert frame.subframe_type == SubframeType.B
    assert frame.magnetic_field == (1.0, -1.0, 0.0)
    assert frame.magnetic_field_text == "{1.0; -1.0; 0.0}"
    assert frame.ambient_light == pytest.approx(353894.4)
    assert frame.uptime == Duration(300, TimeUnit.MINUTES)
    assert frame.temperature == 22.5
    assert frame.battery_voltage == 3000
    assert frame.battery_level == 87
    assert frame.acceleration is None


def test_encode_subframe_b_roundtrip():
    """Subframe B re-encodes to the identical payload."""
    frame = TelemetryFrame(PAYLOAD_B)
    assert TelemetryFrame.encode(frame.fields) == PAYLOAD_B


def test_negative_temperature_and_unmeasured_voltage():
    """12-bit temperature is signed; 0x3FFF voltage means not measured."""
    frame = TelemetryFrame(_with(PAYLOAD_B, b17=0x11, b18=0xFC, b19=0xFF, b20=0xFF))
    assert frame.temperature == -1.0
    assert frame.battery_voltage is None


def test_unmeasured_battery_level():
    """0xFF battery level means not measured."""
    assert TelemetryFrame(_with(PAYLOAD_B, b21=0xFF)).battery_level is None


def test_decode_subframe_b_v0_errors():
    """Version 0 keeps its error flags in byte 21 instead of a battery level."""
    frame = TelemetryFrame(_with(PAYLOAD_B, b2=0x02, b21=0x03))
    assert frame.protocol_version == 0
    assert frame.has_firmware_error is True
    assert frame.has_clock_error is True
    assert frame.error_message == "Firmware & clock error"
    assert frame.battery_level is None


def test_unsupported_version_only_sets_version():
    """Protocol versions above 2 update the version and nothing else."""
    frame = TelemetryFrame(PAYLOAD_A)
    newer = TelemetryFrame(_with(PAYLOAD_B, b2=0x32, b3=0xFF))
    assert newer.protocol_version == 3
    assert newer.short_identifier is None

    changed = frame.update(newer)
    assert changed == ["protocol_version"]
    assert frame.protocol_version == 3
    assert frame.short_identifier == IDENTIFIER
    assert frame.subframe_type == SubframeType.A
    assert frame.acceleration == (2.0, 2.0, 2.0)


def test_wrong_length_is_noop():
    """A truncated payload leaves the fields untouched."""
    frame = TelemetryFrame(PAYLOAD_A)
    short = TelemetryFrame(PAYLOAD_B[:-1])
    assert not short.is_valid()
    assert frame.update(short) == []
    assert frame.pressure == 100000.0


def test_subframes_accumulate():
    """An A then B update holds both halves of the telemetry."""
    frame = TelemetryFrame(PAYLOAD_A)
    changed = frame.update(TelemetryFrame(PAYLOAD_B))
    assert "temperature" in changed
    assert "acceleration" not in changed
    assert frame.subframe_type == SubframeType.B
    assert frame.acceleration == (2.0, 2.0, 2.0)
    assert frame.temperature == 22.5
    assert frame.battery_level == 87
    # Error flags are not carried by v1 subframe B
    assert frame.has_firmware_error is True


def test_from_fields():
    """A subframe B payload built from typed fields."""
    frame = TelemetryFrame.from_fields(
        protocol_version=1,
        short_identifier=IDENTIFIER,
        subframe_type=SubframeType.B,
        magnetic_field=(1.0, -1.0, 0.0),
        ambient_light=353894.4,
        uptime=Duration(300, TimeUnit.MINUTES),
        temperature=22.5,
        battery_voltage=3000,
        battery_level=87,
    )
    assert frame.payload == PAYLOAD_B


def test_uptime_in_weeks_encodes_as_days():
    """Uptime has no weeks unit on the wire."""
    frame = TelemetryFrame(PAYLOAD_B)
    frame.uptime = Duration(2, TimeUnit.WEEKS)
    assert TelemetryFrame(frame.payload).uptime == Duration(14, TimeUnit.DAYS)


def test_encode_unavailable_for_bad_identifier():
    """The short identifier must be 8 bytes of hex."""
    assert TelemetryFrame.from_fields(short_identifier="XYZ").payload == b""
    assert TelemetryFrame.from_fields(short_identifier="0123").payload == b""
    assert TelemetryFrame.from_fields(short_identifier=None).payload == b""
    assert TelemetryFrame.from_fields(
        short_identifier=IDENTIFIER, protocol_version=3
    ).payload == b""


def test_motion_duration_units():
    """Unit code 3 covers days below 32 and weeks above."""
    assert decode_motion_duration(0x1F) == Duration(31, TimeUnit.SECONDS)
    assert decode_motion_duration(0x85) == Duration(5, TimeUnit.HOURS)
    assert decode_motion_duration(0xDF) == Duration(31, TimeUnit.DAYS)
    assert decode_motion_duration(0xE0) == Duration(0, TimeUnit.WEEKS)
    assert decode_motion_duration(0xFF) == Duration(31, TimeUnit.WEEKS)


def test_motion_duration_encode_clamps():
    """Out of range numbers are clamped to what the unit can hold."""
    assert encode_motion_duration(Duration(70, TimeUnit.SECONDS)) == 0x3F
    assert encode_motion_duration(Duration(40, TimeUnit.DAYS)) == 0xDF
    assert encode_motion_duration(Duration(100, TimeUnit.WEEKS)) == 0xFF
    assert encode_motion_duration(None) == 0


def test_duration_str():
    """Durations render as number and unit."""
    assert str(Duration(12, TimeUnit.MINUTES)) == "12 minutes"
    assert Duration(1, TimeUnit.DAYS).to_dict() == {"number": 1, "unit": "days"}


def test_ambient_light():
    """Light is 2^exponent * mantissa * 0.72 lux."""
    assert decode_ambient_light(0x00) == 0.0
    assert decode_ambient_light(0x11) == pytest.approx(1.44)
    # 0x02 and 0x11 both decode to 1.44; the first match wins
    assert encode_ambient_light(1.44) == 0x02
    # 2^7 * 11 * 0.72 = 1013.76 is the closest to 1000
    assert encode_ambient_light(1000.0) == 0x7B
    assert encode_ambient_light(None) == 0


def test_error_message_and_vectors():
    """Helpers for derived text values."""
    assert error_message(False, False) is None
    assert error_message(True, True) == "Firmware & clock error"
    assert format_vector(None) is None
    assert format_vector((0.5, -1.0, 0.0)) == "{0.5; -1.0; 0.0}"


def test_to_dict():
    """Durations and vectors become JSON values."""
    d = TelemetryFrame(PAYLOAD_A).to_dict()
    assert d["kind"] == "estimote_telemetry"
    assert d["fields"]["acceleration"] == [2.0, 2.0, 2.0]
    assert d["fields"]["current_motion_duration"] == {"number": 5, "unit": "weeks"}


def test_wrong_size_vector_makes_encode_unavailable():
    """Vectors must be exactly three numbers or the payload is not written."""
    frame = TelemetryFrame(PAYLOAD_A)
    frame.acceleration = (1.0, 2.0)
    assert frame.payload == b""
    frame.acceleration = (1.0, 2.0, 3.0, 4.0)
    assert frame.payload == b""
    frame.acceleration = ("x", 1.0, 1.0)
    assert frame.payload == b""
    frame.acceleration = (2.0, 2.0, 2.0)
    assert len(frame.payload) == 22

    frame = TelemetryFrame(PAYLOAD_B)
    frame.magnetic_field = (0.5, 0.5, 0.5, 0.5)
    assert frame.payload == b""


def test_is_vector():
    """Three real numbers, as a tuple or list."""
    assert is_vector((1.0, -1.0, 0))
    assert is_vector([0.5, 0.5, 0.5])
    assert not is_vector((1.0, 2.0))
    assert not is_vector((True, 1.0, 1.0))
    assert not is_vector("abc")
    assert not is_vector(None)
