"""Tests for frame type classification and frame creation."""

from beacon_frames_mcp.models import (
    TelemetryFrame,
    TlmFrame,
    UidFrame,
    UnknownFrame,
    UrlFrame,
)
from beacon_frames_mcp.protocol.framing import (
    EddystoneFrameType,
    TelemetryFrameType,
    build_eddystone_header,
    build_telemetry_header,
    get_eddystone_frame_type,
)
from beacon_frames_mcp.protocol.parser import (
    FrameKind,
    classify,
    classify_eddystone,
    classify_telemetry,
    create_eddystone_frame,
    create_frame,
    create_telemetry_frame,
)

UID_PAYLOAD = bytes([0xAA, 0xFE, 0x00]) + bytes(17)
TELEMETRY_PAYLOAD = bytes([0x9A, 0xFE, 0x12]) + bytes(19)


def test_frame_type_values():
    """Frame type identifiers match the wire values."""
    assert EddystoneFrameType.UID == 0x00
    assert EddystoneFrameType.URL == 0x10
    assert EddystoneFrameType.TLM == 0x20
    assert TelemetryFrameType.ESTIMOTE == 0x12


def test_headers():
    """Header builders produce magic + frame type."""
    assert build_eddystone_header(EddystoneFrameType.UID) == b"\xAA\xFE\x00"
    assert build_eddystone_header(EddystoneFrameType.TLM) == b"\xAA\xFE\x20"
    assert build_telemetry_header() == b"\x9A\xFE\x12"
    assert build_telemetry_header(2) == b"\x9A\xFE\x22"
    assert build_telemetry_header(0) == b"\x9A\xFE\x02"


def test_classify_uid():
    """AA FE 00 + 17 bytes is a UID frame."""
    assert classify_eddystone(UID_PAYLOAD) == FrameKind.UID
    assert classify(UID_PAYLOAD) == FrameKind.UID


def test_classify_url_and_tlm():
    """The other defined Eddystone frame types."""
    assert classify(b"\xAA\xFE\x10\x00") == FrameKind.URL
    assert classify(b"\xAA\xFE\x20\x00") == FrameKind.TLM


def test_classify_unknown_eddystone_type():
    """Known magic with an undefined frame type is unknown, not a failure."""
    payload = bytes([0xAA, 0xFE, 0x99]) + bytes(17)
    assert get_eddystone_frame_type(payload) is None
    assert classify_eddystone(payload) == FrameKind.UNKNOWN
    assert classify(payload) == FrameKind.UNKNOWN


def test_classify_no_match():
    """Short or foreign payloads match neither family."""
    assert classify_eddystone(bytes([0x01, 0x02])) == FrameKind.NO_MATCH
    assert classify_telemetry(bytes([0x01, 0x02])) == FrameKind.NO_MATCH
    assert classify(bytes([0x01, 0x02])) == FrameKind.NO_MATCH
    assert classify(b"\xAA\xFE") == FrameKind.NO_MATCH
    assert classify(b"") == FrameKind.NO_MATCH
    assert classify(None) == FrameKind.NO_MATCH


def test_classify_telemetry():
    """9A FE 12 is an Estimote Telemetry frame."""
    assert classify_telemetry(TELEMETRY_PAYLOAD) == FrameKind.ESTIMOTE_TELEMETRY
    assert classify_eddystone(TELEMETRY_PAYLOAD) == FrameKind.NO_MATCH
    assert classify(TELEMETRY_PAYLOAD) == FrameKind.ESTIMOTE_TELEMETRY


def test_classify_telemetry_other_versions():
    """Every protocol version shares the 0x2 frame type nibble."""
    for type_byte in (0x02, 0x22, 0x32):
        payload = bytes([0x9A, 0xFE, type_byte]) + bytes(19)
        assert classify(payload) == FrameKind.ESTIMOTE_TELEMETRY


def test_classify_unknown_estimote_type():
    """Estimote magic with another frame type is unknown."""
    assert classify_telemetry(b"\x9A\xFE\x01\x00") == FrameKind.UNKNOWN
    assert classify_eddystone(b"\x9A\xFE\x01\x00") == FrameKind.NO_MATCH


def test_classify_does_not_modify_input():
    """Classification leaves the payload untouched."""
    payload = bytearray(UID_PAYLOAD)
    classify(payload)
    assert bytes(payload) == UID_PAYLOAD


def test_classify_accepts_int_lists():
    """A list of byte values is classified like bytes."""
    assert classify([0xAA, 0xFE, 0x00] + [0] * 17) == FrameKind.UID
    assert classify([0xAA, 0xFE, 0x999]) == FrameKind.NO_MATCH


def test_create_frame_variants():
    """create_frame instantiates the class for each kind."""
    assert isinstance(create_frame(UID_PAYLOAD), UidFrame)
    assert isinstance(create_frame(b"\xAA\xFE\x10\xEB\x01abc"), UrlFrame)
    assert isinstance(create_frame(b"\xAA\xFE\x20" + bytes(13)), TlmFrame)
    assert isinstance(create_frame(TELEMETRY_PAYLOAD), TelemetryFrame)
    assert isinstance(create_frame(b"\xAA\xFE\x99\x01"), UnknownFrame)
    assert create_frame(b"\x01\x02") is None


def test_create_family_specific():
    """Each family factory ignores the other family."""
    assert create_eddystone_frame(TELEMETRY_PAYLOAD) is None
    assert create_telemetry_frame(UID_PAYLOAD) is None
    assert isinstance(create_telemetry_frame(TELEMETRY_PAYLOAD), TelemetryFrame)
    assert isinstance(create_eddystone_frame(UID_PAYLOAD), UidFrame)


def test_unknown_frame_keeps_payload():
    """Unknown frames expose the raw payload and frame type."""
    payload = b"\xAA\xFE\x99\x01\x02\x03"
    frame = create_frame(payload)
    assert frame.payload == payload
    assert frame.is_valid()
    assert frame.frame_type == 0x99
    assert frame.to_dict()["kind"] == "unknown"


def test_unknown_frame_passes_payload_through():
    """Unknown frames encode back to the payload they were built from."""
    payload = b"\x9A\xFE\x01\x0A\x0B"
    frame = create_frame(payload)
    assert isinstance(frame, UnknownFrame)
    assert frame.raw == payload
    assert UnknownFrame.encode(frame.fields) == payload

    frame.raw = b"\xAA\xFE\x99\x05"
    assert frame.payload == b"\xAA\xFE\x99\x05"
    assert frame.frame_type == 0x99
    assert UnknownFrame().payload == b""


def test_create_frame_passes_callback():
    """The change callback is wired before the first decode."""
    names = []
    create_frame(bytes([0xAA, 0xFE, 0x00, 0xEE]) + bytes([1] * 16), on_change=names.append)
    assert names[0] == "ranging_data"
