"""Holder for frames this library does not understand."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from .base import BeaconFrame, FrameField, FrameFields


@dataclass
class UnknownFields(FrameFields):
    """The undecoded payload of an unknown frame."""

    raw: bytes | None = None


class UnknownFrame(BeaconFrame):
    """A frame with a known family header but an unhandled frame type.

    The payload passes through unchanged: decoding keeps it as ``raw`` and
    encoding writes ``raw`` back.
    """

    KIND: ClassVar[str] = "unknown"
    FIELDS: ClassVar[type[FrameFields]] = UnknownFields

    raw = FrameField()

    @property
    def frame_type(self) -> int | None:
        """The unrecognized frame type byte."""
        if not self.is_valid():
            return None
        return self.payload[2]

    def set(self, **values: Any) -> list[str]:
        if values.get("raw") is not None:
            values["raw"] = bytes(values["raw"])
        return super().set(**values)

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        if not UnknownFrame.check_payload(payload):
            return {}
        return {"raw": bytes(payload)}

    @staticmethod
    def encode(fields: UnknownFields) -> bytes:
        return fields.raw or b""

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["frame_type"] = self.frame_type
        return d
