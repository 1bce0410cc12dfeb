"""Exceptions raised by the beacon frame codec."""


class BeaconError(ValueError):
    """Raised when a beacon frame is parsed or assembled incorrectly.

    Malformed wire data never raises; this is reserved for misuse such as
    passing identifiers of the wrong length or unknown field names.
    """
