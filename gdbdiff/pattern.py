"""Instruction pattern strings and first-match dispatch tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

_MAX_BINARY_LEN = 64
_MAX_HEX_LEN = 16
_HEX_DIGITS = "0123456789abcdef"
_U64 = (1 << 64) - 1


class PatternError(ValueError):
    """Raised for a malformed pattern string."""


@dataclass(frozen=True)
class Pattern:
    """A decoded pattern: compare ``(inst >> shift) & mask`` with ``key``."""

    key: int
    mask: int
    shift: int

    def matches(self, inst: int) -> bool:
        return (((inst & _U64) >> self.shift) & self.mask) == self.key


def pattern_decode(text: str) -> Pattern:
    """Decode a binary pattern of ``0``, ``1``, ``?`` and spaces."""
    key = mask = shift = 0
    for c in text:
        if c == " ":
            continue
        if c not in "01?":
            raise PatternError(f"invalid character {c!r} in pattern string")
        key = (key << 1) | (c == "1")
        mask = (mask << 1) | (c != "?")
        shift = shift + 1 if c == "?" else 0
    if len(text) >= _MAX_BINARY_LEN:
        raise PatternError("pattern too long")
    return Pattern(key >> shift, mask >> shift, shift)


def pattern_decode_hex(text: str) -> Pattern:
    """Decode a hexadecimal pattern of lower-case digits, ``?`` and spaces."""
    key = mask = shift = 0
    for c in text:
        if c == " ":
            continue
        if c == "?":
            key <<= 4
            mask <<= 4
            shift += 4
            continue
        if c not in _HEX_DIGITS:
            raise PatternError(f"invalid character {c!r} in pattern string")
        key = (key << 4) | _HEX_DIGITS.index(c)
        mask = (mask << 4) | 0xF
        shift = 0
    if len(text) >= _MAX_HEX_LEN:
        raise PatternError("pattern too long")
    return Pattern(key >> shift, mask >> shift, shift)


Handler = Callable[..., object]


class PatternTable:
    """Ordered list of patterns; the first one that matches wins."""

    def __init__(self) -> None:
        self._entries: list[tuple[Pattern, Handler]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, pattern: Union[str, Pattern], handler: Handler) -> Pattern:
        """Append a pattern (string or decoded) with its handler."""
        if isinstance(pattern, str):
            pattern = pattern_decode(pattern)
        self._entries.append((pattern, handler))
        return pattern

    def match(self, inst: int) -> Optional[Handler]:
        """Return the handler of the first matching pattern, or None."""
        return next((h for p, h in self._entries if p.matches(inst)), None)