"""Guest instruction-set descriptions and the GDB register file layout."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from gdbdiff.protocol import decode_hex_str

# The register union always spans at least this many 32-bit words.
_GDB_UNION_WORDS = 77
_GDB_WORD_CHARS = 8


class Isa(Enum):
    """Supported guest instruction sets."""

    MIPS32 = "mips32"
    RISCV32 = "riscv32"
    RISCV64 = "riscv64"
    X86 = "x86"
    LOONGARCH32R = "loongarch32r"


_QEMU_BINARIES = {
    Isa.MIPS32: "qemu-system-mipsel",
    Isa.RISCV32: "qemu-system-riscv32",
    Isa.RISCV64: "qemu-system-riscv64",
    Isa.X86: "qemu-system-i386",
    Isa.LOONGARCH32R: "qemu-system-loongarch32",
}

_RISCV = (Isa.RISCV32, Isa.RISCV64)


@dataclass(frozen=True)
class IsaConfig:
    """A guest ISA together with its build options."""

    isa: Isa
    rve: bool = False

    def __post_init__(self) -> None:
        if self.rve and self.isa not in _RISCV:
            raise ValueError(f"the E extension applies only to RISC-V, not {self.isa.value}")

    @property
    def word_size(self) -> int:
        """Width in bytes of one general-purpose register."""
        return 8 if self.isa is Isa.RISCV64 else 4

    @property
    def gpr_count(self) -> int:
        return 16 if self.rve else 32

    def reg_size(self) -> int:
        """Bytes of register state exchanged with the reference."""
        if self.isa is Isa.X86:
            return 4 * 9  # GPRs + pc
        if self.isa is Isa.MIPS32:
            return 4 * 38  # GPRs + status + lo + hi + badvaddr + cause + pc
        if self.isa is Isa.LOONGARCH32R:
            return 4 * 33  # GPRs + pc
        return self.word_size * (self.gpr_count + 1)  # GPRs + pc

    def qemu_binary(self) -> str:
        return _QEMU_BINARIES[self.isa]

    def qemu_args(self, nemu_home: str) -> list[str]:
        """Machine-specific arguments placed before the common QEMU options."""
        if self.isa is Isa.MIPS32:
            return ["-machine", "mipssim", "-kernel", f"{nemu_home}/resource/mips-elf/mips.dummy"]
        if self.isa is Isa.RISCV32:
            return ["-bios", "none"]
        if self.isa is Isa.LOONGARCH32R:
            return ["-M", "ls3a5k32"]
        return []

    def gdb_reg_names(self) -> list[str]:
        """Register names in the order GDB transfers them."""
        gprs = [f"gpr{i}" for i in range(32)]
        if self.isa is Isa.MIPS32:
            return gprs + ["status", "lo", "hi", "badvaddr", "cause", "pc"]
        if self.isa is Isa.RISCV64:
            return gprs + [f"fpr{i}" for i in range(32)] + ["pc"]
        if self.isa is Isa.X86:
            return [
                "eax", "ecx", "edx", "ebx", "esp", "ebp", "esi", "edi",
                "eip", "eflags",
                "cs", "ss", "ds", "es", "fs", "gs",
            ]
        return gprs + ["pc"]

    @property
    def union_size(self) -> int:
        """Size in bytes of the full register buffer exchanged with GDB."""
        return max(len(self.gdb_reg_names()) * self.word_size, _GDB_UNION_WORDS * 4)


@dataclass(frozen=True)
class GdbRegs:
    """Raw little-endian register bytes as exchanged with GDB."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def __len__(self) -> int:
        return len(self.data)

    @classmethod
    def from_reply(cls, reply: Union[bytes, str]) -> "GdbRegs":
        """Decode a ``g`` reply, eight hex characters per 32-bit word."""
        text = reply.encode("latin-1") if isinstance(reply, str) else bytes(reply)
        chunks = (text[i:i + _GDB_WORD_CHARS] for i in range(0, len(text), _GDB_WORD_CHARS))
        return cls(b"".join(decode_hex_str(chunk).to_bytes(4, "little") for chunk in chunks))

    def encode(self) -> bytes:
        """The ``G`` command that writes these registers."""
        return b"G" + self.data.hex().encode("ascii")

    def as_bytes(self) -> bytes:
        return self.data

    def replace_prefix(self, data: bytes) -> "GdbRegs":
        """Return a copy whose leading bytes are replaced by ``data``."""
        if len(data) > len(self.data):
            raise ValueError(
                f"prefix of {len(data)} bytes exceeds register buffer of {len(self.data)} bytes"
            )
        return GdbRegs(bytes(data) + self.data[len(data):])