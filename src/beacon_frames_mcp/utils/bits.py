"""Bit field and integer helpers for sub-byte frame layouts.

All functions are pure. Callers are responsible for passing correctly sized
input; the frame layouts guarantee it.
"""

from __future__ import annotations


def bits(value: int, mask: int) -> int:
    """Return ``value`` masked with ``mask``, without shifting."""
    return value & mask


def _mask_shift(mask: int) -> int:
    return (mask & -mask).bit_length() - 1 if mask else 0


def shifted_bits(value: int, mask: int) -> int:
    """Return the bits of ``value`` selected by ``mask``, shifted down to bit 0.

    Example: ``shifted_bits(0b0011_0000, 0b0011_0000) == 0b11``.
    """
    return (value & mask) >> _mask_shift(mask)


def inject_bits(value: int, mask: int, field: int) -> int:
    """Write ``field`` into the bits of ``value`` selected by ``mask``.

    ``field`` is given right-aligned and is truncated to the mask width.
    """
    shift = _mask_shift(mask)
    return (value & ~mask) | ((field << shift) & mask)


def signed_byte(value: int) -> int:
    """Interpret an unsigned 8-bit value as two's complement."""
    return signed_n(value & 0xFF, 8)


def unsigned_byte(value: int) -> int:
    """Convert a signed 8-bit value (-128..127) back to its wire byte."""
    return value & 0xFF


def signed_n(value: int, width: int) -> int:
    """Interpret an unsigned ``width``-bit value as two's complement."""
    if value & (1 << (width - 1)):
        return value - (1 << width)
    return value


def le_uint(data: bytes) -> int:
    """Little-endian unsigned integer from all bytes of ``data``."""
    result = 0
    for i, b in enumerate(data):
        result |= b << (8 * i)
    return result


def le_uint32(data: bytes, offset: int = 0) -> int:
    """Little-endian unsigned 32-bit integer at ``offset``."""
    return le_uint(data[offset : offset + 4])


def le_uint48(data: bytes, offset: int = 0) -> int:
    """Little-endian unsigned 48-bit integer at ``offset``."""
    return le_uint(data[offset : offset + 6])


def le_uint64(data: bytes, offset: int = 0) -> int:
    """Little-endian unsigned 64-bit integer at ``offset``."""
    return le_uint(data[offset : offset + 8])
