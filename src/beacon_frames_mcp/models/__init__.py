"""Beacon frame variants: Eddystone UID/URL/TLM, Estimote Telemetry, unknown."""

from .base import BeaconFrame, FrameField, FrameFields
from .uid import UidFrame, UidFields
from .url import UrlFrame, UrlFields
from .tlm import TlmFrame, TlmFields
from .telemetry import (
    TelemetryFrame,
    TelemetryFields,
    SubframeType,
    TimeUnit,
    Duration,
)
from .unknown import UnknownFrame, UnknownFields
