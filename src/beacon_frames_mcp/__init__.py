"""Eddystone and Estimote Telemetry beacon frame codec with an MCP server."""

__version__ = "0.1.0"
