"""Frame type dispatch for raw advertisement payloads.

Each family (Eddystone, Estimote Telemetry) is classified independently:

- wrong magic or fewer than 3 bytes: ``NO_MATCH``, try another family
- magic matches, frame type known: the variant's ``FrameKind``
- magic matches, frame type not handled: ``UNKNOWN``

Classification never raises and never modifies the payload.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..models.base import BeaconFrame
from ..models.telemetry import TelemetryFrame
from ..models.tlm import TlmFrame
from ..models.uid import UidFrame
from ..models.unknown import UnknownFrame
from ..models.url import UrlFrame
from .framing import (
    EddystoneFrameType,
    get_eddystone_frame_type,
    has_eddystone_header,
    has_telemetry_header,
    is_estimote_telemetry,
)

logger = logging.getLogger(__name__)


class FrameKind(str, Enum):
    """Result of classifying a payload."""

    UID = "uid"
    URL = "url"
    TLM = "tlm"
    ESTIMOTE_TELEMETRY = "estimote_telemetry"
    UNKNOWN = "unknown"
    NO_MATCH = "no_match"


EDDYSTONE_KINDS = {
    EddystoneFrameType.UID: FrameKind.UID,
    EddystoneFrameType.URL: FrameKind.URL,
    EddystoneFrameType.TLM: FrameKind.TLM,
}

FRAME_CLASSES: dict[FrameKind, type[BeaconFrame]] = {
    FrameKind.UID: UidFrame,
    FrameKind.URL: UrlFrame,
    FrameKind.TLM: TlmFrame,
    FrameKind.ESTIMOTE_TELEMETRY: TelemetryFrame,
    FrameKind.UNKNOWN: UnknownFrame,
}


def _as_bytes(payload) -> bytes | None:
    """Copy a byte sequence into ``bytes``; None if it is not one."""
    if payload is None:
        return None
    try:
        return bytes(payload)
    except (TypeError, ValueError):
        return None


def classify_eddystone(payload: bytes | None) -> FrameKind:
    """Classify a payload as one of the Eddystone frame kinds."""
    payload = _as_bytes(payload)
    if not has_eddystone_header(payload):
        return FrameKind.NO_MATCH
    frame_type = get_eddystone_frame_type(payload)
    if frame_type is None:
        return FrameKind.UNKNOWN
    return EDDYSTONE_KINDS[frame_type]


def classify_telemetry(payload: bytes | None) -> FrameKind:
    """Classify a payload as an Estimote Telemetry frame."""
    payload = _as_bytes(payload)
    if not has_telemetry_header(payload):
        return FrameKind.NO_MATCH
    if is_estimote_telemetry(payload):
        return FrameKind.ESTIMOTE_TELEMETRY
    return FrameKind.UNKNOWN


def classify(payload: bytes | None) -> FrameKind:
    """Classify a payload against every known family."""
    for classifier in (classify_eddystone, classify_telemetry):
        kind = classifier(payload)
        if kind != FrameKind.NO_MATCH:
            return kind
    return FrameKind.NO_MATCH


def _create(kind: FrameKind, payload: bytes | None, on_change) -> BeaconFrame | None:
    if kind == FrameKind.NO_MATCH:
        return None
    payload = _as_bytes(payload)
    logger.debug("Creating %s frame from %s", kind.value, payload.hex(" "))
    return FRAME_CLASSES[kind](payload, on_change=on_change)


def create_eddystone_frame(payload: bytes | None, on_change=None) -> BeaconFrame | None:
    """Instantiate the Eddystone frame class for a payload.

    Returns:
        A ``UidFrame``, ``UrlFrame``, ``TlmFrame`` or ``UnknownFrame``, or
        None if the payload is not an Eddystone frame.
    """
    return _create(classify_eddystone(payload), payload, on_change)


def create_telemetry_frame(payload: bytes | None, on_change=None) -> BeaconFrame | None:
    """Instantiate the Estimote frame class for a payload.

    Returns:
        A ``TelemetryFrame`` or ``UnknownFrame``, or None if the payload
        is not an Estimote frame.
    """
    return _create(classify_telemetry(payload), payload, on_change)


def create_frame(payload: bytes | None, on_change=None) -> BeaconFrame | None:
    """Auto-dispatch a payload to the matching frame class.

    Returns None if no family recognizes the payload.
    """
    return _create(classify(payload), payload, on_change)
