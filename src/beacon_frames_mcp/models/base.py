"""Base class shared by every beacon frame variant.

A frame owns exactly one raw payload and one fields record. The two are kept
in sync by two pure functions each variant provides:

- ``decode(payload) -> dict``: field values found in the payload, in the order
  they are evaluated. Fields that do not apply are simply absent.
- ``encode(fields) -> bytes``: the payload for a fields record, or ``b""``
  when the record cannot be encoded.

Neither calls the other. Decoding writes the fields record directly and
encoding writes the payload directly, so a field assignment never triggers a
decode and a decode never triggers an encode.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from ..exceptions import BeaconError
from ..protocol.framing import HEADER_SIZE

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


@dataclass
class FrameFields:
    """Base class for the typed fields of a frame variant."""


class FrameField:
    """Attribute on a frame that reads from and writes to its fields record.

    Assigning to the attribute is the same as calling ``frame.set(name=value)``.
    """

    def __set_name__(self, owner, name: str) -> None:
        self.name = name

    def __get__(self, frame, owner=None):
        if frame is None:
            return self
        return getattr(frame.fields, self.name)

    def __set__(self, frame, value) -> None:
        frame.set(**{self.name: value})


class BeaconFrame:
    """Base class for beacon frames.

    Args:
        payload: Raw advertisement bytes. Fields are decoded immediately.
        on_change: Called with the name of each field whose value changed,
            once per field, in decode order.
    """

    KIND: ClassVar[str] = "base"
    FIELDS: ClassVar[type[FrameFields]] = FrameFields
    # Names of derived values that change together with a field
    DERIVED: ClassVar[dict[str, tuple[str, ...]]] = {}

    def __init__(
        self,
        payload: bytes | None = None,
        *,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._payload = bytes(payload) if payload is not None else b""
        self._fields = self.FIELDS()
        self.on_change = on_change
        if payload is not None:
            self._merge(self.decode(self._payload))

    @classmethod
    def from_fields(cls, *, on_change: ChangeCallback | None = None, **values: Any):
        """Create a frame from typed field values and synthesize its payload."""
        frame = cls(on_change=on_change)
        frame._check_names(values)
        frame._fields = dataclasses.replace(frame._fields, **values)
        frame._payload = cls.encode(frame._fields)
        return frame

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        return {}

    @staticmethod
    def encode(fields: FrameFields) -> bytes:
        return b""

    @property
    def payload(self) -> bytes:
        return self._payload

    @property
    def fields(self) -> FrameFields:
        return self._fields

    @property
    def beacon_id(self) -> str | None:
        """Identifier of the transmitting beacon, when the frame carries one."""
        return None

    def is_valid(self) -> bool:
        """Check the current payload against this variant's layout."""
        return self.check_payload(self._payload)

    @classmethod
    def check_payload(cls, payload: bytes | None) -> bool:
        """Family-agnostic check: a payload of at least header size is present.

        Variants extend this with their magic, frame type and length checks.
        """
        return payload is not None and len(payload) >= HEADER_SIZE

    def set(self, **values: Any) -> list[str]:
        """Assign typed field values and re-encode the payload.

        Returns:
            Names of the fields (and derived values) that actually changed.

        Raises:
            BeaconError: If a name is not a field of this frame.
        """
        self._check_names(values)
        changed = self._merge(values)
        if changed:
            self._payload = self.encode(self._fields)
            if not self._payload:
                logger.debug("%s payload cannot be encoded from %r", self.KIND, self._fields)
        return changed

    def update(self, other: BeaconFrame) -> list[str]:
        """Take over another frame's payload and decode it into this frame.

        Only fields whose decoded value differs are reported, which lets a
        long-lived frame track a beacon without being replaced.
        """
        self._payload = other.payload
        return self._merge(self.decode(self._payload))

    def to_dict(self) -> dict:
        """Convert the frame to a JSON-serializable dictionary."""
        return {
            "kind": self.KIND,
            "valid": self.is_valid(),
            "payload": self._payload.hex(" "),
            "fields": {
                f.name: _jsonable(getattr(self._fields, f.name))
                for f in dataclasses.fields(self._fields)
            },
        }

    def _check_names(self, values: dict[str, Any]) -> None:
        names = {f.name for f in dataclasses.fields(self.FIELDS)}
        unknown = [name for name in values if name not in names]
        if unknown:
            raise BeaconError(
                f"Unknown {self.KIND} field(s) {unknown}. Valid: {sorted(names)}"
            )

    def _merge(self, values: dict[str, Any]) -> list[str]:
        """Store new field values and notify for each one that changed."""
        changed: list[str] = []
        updates = {}
        for name, value in values.items():
            if getattr(self._fields, name) == value:
                continue
            updates[name] = value
            changed.append(name)
            changed.extend(self.DERIVED.get(name, ()))
        if updates:
            self._fields = dataclasses.replace(self._fields, **updates)
        if self.on_change is not None:
            for name in changed:
                self.on_change(name)
        return changed

    def __repr__(self) -> str:
        payload = self._payload.hex(" ") if self._payload else "(empty)"
        return f"{type(self).__name__}(payload={payload})"


def _jsonable(value):
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, tuple):
        return list(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
