"""Little-endian guest memory access."""

from __future__ import annotations

PAGE_SHIFT = 12
PAGE_SIZE = 1 << PAGE_SHIFT
PAGE_MASK = PAGE_SIZE - 1

_ACCESS_SIZES = (1, 2, 4, 8)


class MemoryAccessError(IndexError):
    """Raised for an access outside the backing memory."""


def _check_length(length: int) -> None:
    if length not in _ACCESS_SIZES:
        raise ValueError(f"unsupported access length {length}")


def _check_span(data, offset: int, length: int) -> None:
    if offset < 0 or offset + length > len(data):
        raise MemoryAccessError(
            f"access of {length} bytes at offset {offset} is outside a buffer of {len(data)} bytes"
        )


def host_read(data, offset: int, length: int) -> int:
    """Read a little-endian unsigned value of ``length`` bytes."""
    _check_length(length)
    _check_span(data, offset, length)
    return int.from_bytes(data[offset:offset + length], "little")


def host_write(data, offset: int, length: int, value: int) -> None:
    """Write the low ``length`` bytes of ``value`` in little-endian order."""
    _check_length(length)
    _check_span(data, offset, length)
    truncated = value & ((1 << (8 * length)) - 1)
    data[offset:offset + length] = truncated.to_bytes(length, "little")


class PhysicalMemory:
    """Guest physical memory occupying ``[base, base + size)``."""

    def __init__(self, base: int = 0x80000000, size: int = 0x8000000) -> None:
        if size <= 0:
            raise ValueError(f"memory size must be positive, got {size}")
        self.base = base
        self.size = size
        self.data = bytearray(size)

    def in_pmem(self, addr: int) -> bool:
        return 0 <= addr - self.base < self.size

    def guest_to_host(self, paddr: int) -> int:
        """Offset into ``data`` for a guest physical address."""
        return paddr - self.base

    def host_to_guest(self, offset: int) -> int:
        """Guest physical address for an offset into ``data``."""
        return offset + self.base

    def _check(self, addr: int, length: int) -> None:
        _check_length(length)
        if not (self.in_pmem(addr) and self.in_pmem(addr + length - 1)):
            right = self.base + self.size - 1
            raise MemoryAccessError(
                f"address = {addr:#010x} is out of bound of pmem "
                f"[{self.base:#010x}, {right:#010x}]"
            )

    def read(self, addr: int, length: int) -> int:
        self._check(addr, length)
        return host_read(self.data, self.guest_to_host(addr), length)

    def write(self, addr: int, length: int, data: int) -> None:
        self._check(addr, length)
        host_write(self.data, self.guest_to_host(addr), length, data)