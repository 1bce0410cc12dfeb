"""Protocol layer: frame headers and frame type dispatch."""

from .framing import EddystoneFrameType, TelemetryFrameType
from .framing import build_eddystone_header, build_telemetry_header
