"""MCP server entry point for the beacon frame codec.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport. Payloads cross the
tool boundary as hex strings; spaces, colons and dashes are ignored.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.telemetry import Duration, SubframeType, TelemetryFrame, TimeUnit
from .models.tlm import TlmFrame
from .models.uid import INSTANCE_ID_SIZE, NAMESPACE_ID_SIZE, UidFrame
from .models.url import URL_EXPANSIONS, URL_SCHEMES, UrlFrame
from .protocol.framing import EDDYSTONE_MAGIC, TELEMETRY_MAGIC, EddystoneFrameType
from .protocol.parser import FrameKind, classify, create_frame

logger = logging.getLogger(__name__)

SERVER_NAME = "beacon-frames"

# Telemetry fields set through encode_telemetry_frame arguments
HEADER_FIELDS = frozenset({"short_identifier", "protocol_version", "subframe_type"})

mcp = FastMCP(
    SERVER_NAME,
    instructions="Decode and encode Eddystone and Estimote Telemetry beacon frames",
)


def _parse_hex(text: str) -> bytes:
    """Parse a hex payload, raising ValueError with a readable message."""
    cleaned = "".join(c for c in text if c not in " :-")
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise ValueError(f"Invalid hex payload {text!r}: {e}") from e


def _encoded(frame) -> dict[str, Any]:
    if not frame.payload:
        return {"error": f"Cannot encode {frame.KIND} frame from the given fields"}
    return frame.to_dict()


# ─── DECODING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def classify_payload(payload: str) -> dict[str, Any]:
    """Classify a raw advertisement payload without decoding it.

    Args:
        payload: Payload bytes as hex, e.g. "AA FE 00 EE ...".
    """
    try:
        data = _parse_hex(payload)
    except ValueError as e:
        return {"error": str(e)}
    return {"kind": classify(data).value, "length": len(data)}


@mcp.tool()
def decode_payload(payload: str) -> dict[str, Any]:
    """Decode a raw advertisement payload into typed fields.

    Args:
        payload: Payload bytes as hex.
    """
    try:
        data = _parse_hex(payload)
    except ValueError as e:
        return {"error": str(e)}

    frame = create_frame(data)
    if frame is None:
        return {"kind": FrameKind.NO_MATCH.value, "error": "Not an Eddystone or Estimote frame"}
    return frame.to_dict()


@mcp.tool()
def update_payload(current: str, observed: str) -> dict[str, Any]:
    """Apply a newly observed payload to a previously decoded one.

    Reports which fields changed. Estimote Telemetry fields from the other
    subframe are carried over from ``current``.

    Args:
        current: Previously observed payload as hex.
        observed: Newly observed payload as hex.
    """
    try:
        current_data = _parse_hex(current)
        observed_data = _parse_hex(observed)
    except ValueError as e:
        return {"error": str(e)}

    frame = create_frame(current_data)
    if frame is None:
        return {"error": "Current payload is not an Eddystone or Estimote frame"}
    observed_frame = create_frame(observed_data)
    if observed_frame is None or observed_frame.KIND != frame.KIND:
        return {"error": f"Observed payload is not a {frame.KIND} frame"}

    changed = frame.update(observed_frame)
    result = frame.to_dict()
    result["changed"] = changed
    return result


# ─── ENCODING TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def encode_uid_frame(
    namespace_id: str,
    instance_id: str,
    ranging_data: int = -18,
) -> dict[str, Any]:
    """Build an Eddystone-UID payload.

    Args:
        namespace_id: 10-byte namespace ID as hex.
        instance_id: 6-byte instance ID as hex.
        ranging_data: Tx power at 0 m in dBm (-100 to 20).
    """
    if not -128 <= ranging_data <= 127:
        return {"error": f"Ranging data must be -128..127, got {ranging_data}"}
    try:
        namespace = _parse_hex(namespace_id)
        instance = _parse_hex(instance_id)
    except ValueError as e:
        return {"error": str(e)}
    if len(namespace) != NAMESPACE_ID_SIZE or len(instance) != INSTANCE_ID_SIZE:
        return {
            "error": f"Namespace must be {NAMESPACE_ID_SIZE} bytes and instance "
            f"{INSTANCE_ID_SIZE} bytes, got {len(namespace)} and {len(instance)}"
        }

    frame = UidFrame.from_fields(
        ranging_data=ranging_data, namespace_id=namespace, instance_id=instance
    )
    return _encoded(frame)


@mcp.tool()
def encode_url_frame(url: str, tx_power: int = -18) -> dict[str, Any]:
    """Build an Eddystone-URL payload.

    Args:
        url: URL starting with http://, https://, http://www. or https://www.
        tx_power: Tx power at 0 m in dBm.
    """
    if not -128 <= tx_power <= 127:
        return {"error": f"Tx power must be -128..127, got {tx_power}"}
    return _encoded(UrlFrame.from_fields(tx_power=tx_power, url=url))


@mcp.tool()
def encode_tlm_frame(
    battery_voltage: int | None = None,
    temperature: float | None = None,
    advertisement_count: int = 0,
    seconds_since_boot: float = 0.0,
) -> dict[str, Any]:
    """Build an unencrypted Eddystone-TLM payload.

    Args:
        battery_voltage: Battery voltage in mV, omitted if not supported.
        temperature: Beacon temperature in degrees Celsius.
        advertisement_count: Advertisements sent since boot.
        seconds_since_boot: Time since boot in seconds (0.1 s resolution).
    """
    frame = TlmFrame.from_fields(
        battery_voltage=battery_voltage,
        temperature=temperature,
        advertisement_count=advertisement_count,
        seconds_since_boot=seconds_since_boot,
    )
    return _encoded(frame)


@mcp.tool()
def encode_telemetry_frame(
    short_identifier: str,
    subframe: str = "A",
    protocol_version: int = 2,
    fields: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build an Estimote Telemetry payload.

    Args:
        short_identifier: First 8 bytes of the beacon identifier as hex.
        subframe: "A" (motion, errors, pressure) or "B" (environment, battery).
        protocol_version: Telemetry protocol version (0-2).
        fields: Telemetry field values. Vectors are lists of 3 numbers and
            durations are {"number": int, "unit": "seconds"|"minutes"|...}.
    """
    if subframe.upper() not in SubframeType.__members__:
        return {"error": f"Subframe must be 'A' or 'B', got {subframe!r}"}

    header_keys = HEADER_FIELDS.intersection(fields or {})
    if header_keys:
        return {"error": f"Pass {sorted(header_keys)} as arguments, not in fields"}

    values: dict[str, Any] = {}
    for name, value in (fields or {}).items():
        if isinstance(value, list):
            value = tuple(value)
        elif isinstance(value, dict):
            try:
                value = Duration(int(value["number"]), TimeUnit(value["unit"]))
            except (KeyError, TypeError, ValueError) as e:
                return {"error": f"Invalid duration for {name}: {e}"}
        values[name] = value

    try:
        frame = TelemetryFrame.from_fields(
            protocol_version=protocol_version,
            short_identifier=short_identifier.upper(),
            subframe_type=SubframeType[subframe.upper()],
            **values,
        )
    except (TypeError, ValueError) as e:
        return {"error": str(e)}
    return _encoded(frame)


# ─── MCP RESOURCES ────────────────────────────────────────────────────

@mcp.resource("beacon://frame-types")
def resource_frame_types() -> str:
    """Frame families, magic bytes and frame type identifiers."""
    return json.dumps({
        "eddystone": {
            "magic": EDDYSTONE_MAGIC.hex(" "),
            "frame_types": {t.name.lower(): f"0x{t.value:02X}" for t in EddystoneFrameType},
        },
        "estimote_telemetry": {
            "magic": TELEMETRY_MAGIC.hex(" "),
            "frame_types": {"telemetry": "0x?2 (upper nibble = protocol version)"},
        },
    })


@mcp.resource("beacon://url-encoding")
def resource_url_encoding() -> str:
    """Eddystone-URL scheme prefixes and expansion codes."""
    return json.dumps({
        "schemes": {f"0x{k:02X}": v for k, v in URL_SCHEMES.items()},
        "expansions": {f"0x{k:02X}": v for k, v in URL_EXPANSIONS.items()},
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def explain_payload(payload: str) -> str:
    """Guide the AI to explain a captured beacon payload field by field.

    Args:
        payload: Payload bytes as hex.
    """
    return f"""Decode the beacon payload {payload} using the decode_payload tool.
Explain:
- Which beacon family and frame type it is
- What each decoded field means and its unit
- Any values reported as not measured or not supported
- For Estimote Telemetry, which subframe it is and what the other subframe carries

If the frame is unknown, describe the header bytes that were recognized."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting %s MCP server", SERVER_NAME)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
