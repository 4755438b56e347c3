"""Bit-field helpers for decoding machine words."""

from __future__ import annotations

_U64 = (1 << 64) - 1


def bitmask(bits: int) -> int:
    """Return an integer with the lowest ``bits`` bits set."""
    if bits < 0:
        raise ValueError(f"bit count must be non-negative, got {bits}")
    return (1 << bits) - 1


def bits(x: int, hi: int, lo: int) -> int:
    """Extract ``x[hi:lo]`` (inclusive on both ends)."""
    if lo < 0 or hi < lo:
        raise ValueError(f"invalid bit range [{hi}:{lo}]")
    return (x >> lo) & bitmask(hi - lo + 1)


def sext(x: int, length: int) -> int:
    """Sign-extend the low ``length`` bits of ``x`` to an unsigned 64-bit value."""
    if not 1 <= length <= 64:
        raise ValueError(f"sign-extension width must be 1..64, got {length}")
    value = x & bitmask(length)
    if value >> (length - 1):
        value -= 1 << length
    return value & _U64


def _check_alignment(sz: int) -> None:
    if sz <= 0 or sz & (sz - 1):
        raise ValueError(f"alignment must be a positive power of two, got {sz}")


def roundup(a: int, sz: int) -> int:
    """Round ``a`` up to a multiple of the power of two ``sz``."""
    _check_alignment(sz)
    return (a + sz - 1) & ~(sz - 1)


def rounddown(a: int, sz: int) -> int:
    """Round ``a`` down to a multiple of the power of two ``sz``."""
    _check_alignment(sz)
    return a & ~(sz - 1)