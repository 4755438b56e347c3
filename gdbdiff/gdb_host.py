"""High-level GDB commands used to drive a reference emulator."""

from __future__ import annotations

import struct
import time
from typing import Optional, Union

from gdbdiff.isa import GdbRegs, Isa, IsaConfig
from gdbdiff.protocol import GdbConnection

_MTU = 1500
_STEP_COMMAND = b"vCont;s:1"
_DEFAULT_UNION_SIZE = 77 * 4
_RETRY_DELAY = 1e-6

_X86_BOOT_ADDR = 0x7C00
_X86_BOOT_STEPS = 20
# Real-mode boot sector that loads a flat GDT and switches to protected mode.
_X86_MBR = bytes([
    # start16:
    0xFA,                           # cli
    0x31, 0xC0,                     # xorw   %ax,%ax
    0x8E, 0xD8,                     # movw   %ax,%ds
    0x8E, 0xC0,                     # movw   %ax,%es
    0x8E, 0xD0,                     # movw   %ax,%ss
    0x0F, 0x01, 0x16, 0x44, 0x7C,   # lgdt   gdtdesc
    0x0F, 0x20, 0xC0,               # movl   %cr0,%eax
    0x66, 0x83, 0xC8, 0x01,         # orl    $CR0_PE,%eax
    0x0F, 0x22, 0xC0,               # movl   %eax,%cr0
    0xEA, 0x1D, 0x7C, 0x08, 0x00,   # ljmp   $GDT_ENTRY(1),$start32
    # start32:
    0x66, 0xB8, 0x10, 0x00,         # movw   $0x10,%ax
    0x8E, 0xD8,                     # movw   %ax, %ds
    0x8E, 0xC0,                     # movw   %ax, %es
    0x8E, 0xD0,                     # movw   %ax, %ss
    0xEB, 0xFE,                     # jmp    7c27
    0x8D, 0x76, 0x00,               # lea    0x0(%esi),%esi
    # GDT
    0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00,
    0xFF, 0xFF, 0x00, 0x00, 0x00, 0x9A, 0xCF, 0x00,
    0xFF, 0xFF, 0x00, 0x00, 0x00, 0x92, 0xCF, 0x00,
    # GDT descriptor
    0x17, 0x00, 0x2C, 0x7C, 0x00, 0x00,
])


class GdbHost:
    """Memory, register and stepping commands over a GDB connection."""

    def __init__(self, conn: GdbConnection, union_size: int = _DEFAULT_UNION_SIZE) -> None:
        self.conn = conn
        self.union_size = union_size

    @classmethod
    def connect(cls, port: int, addr: str = "127.0.0.1") -> "GdbHost":
        """Connect to a gdbserver, retrying until it accepts the connection."""
        while True:
            try:
                conn = GdbConnection.connect(addr, port)
            except ConnectionError:
                time.sleep(_RETRY_DELAY)
                continue
            return cls(conn)

    def _command(self, command: bytes) -> bytes:
        self.conn.send(command)
        return self.conn.recv()

    def _memcpy_small(self, dest: int, chunk: bytes) -> bool:
        header = f"M0x{dest:x},{len(chunk):x}:".encode("ascii")
        return self._command(header + chunk.hex().encode("ascii")) == b"OK"

    def memcpy_to_qemu(self, dest: int, data: Union[bytes, bytearray, memoryview]) -> bool:
        """Write ``data`` to guest memory at ``dest``; True if every chunk was accepted."""
        payload = bytes(data)
        chunks = [payload[i:i + _MTU] for i in range(0, len(payload), _MTU)] or [b""]
        ok = True
        for index, chunk in enumerate(chunks):
            ok &= self._memcpy_small((dest + index * _MTU) & 0xFFFFFFFF, chunk)
        return ok

    def getregs(self) -> GdbRegs:
        """Read the register file, sized to the register buffer."""
        regs = GdbRegs.from_reply(self._command(b"g"))
        data = regs.as_bytes()[: self.union_size].ljust(self.union_size, b"\0")
        return GdbRegs(data)

    def setregs(self, regs: GdbRegs) -> bool:
        """Write the register file; True if the peer accepted it."""
        return self._command(regs.encode()) == b"OK"

    def step(self) -> bytes:
        """Execute a single instruction and return the stop reply."""
        return self._command(_STEP_COMMAND)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "GdbHost":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def init_isa(host: GdbHost, config: IsaConfig) -> None:
    """Bring the reference to the state the emulator starts in."""
    if config.isa is not Isa.X86:
        return
    if not host.memcpy_to_qemu(_X86_BOOT_ADDR, _X86_MBR):
        raise RuntimeError("failed to load the boot sector into the reference")

    names = config.gdb_reg_names()
    data = bytearray(host.getregs().as_bytes())
    struct.pack_into("<I", data, names.index("eip") * 4, _X86_BOOT_ADDR)
    struct.pack_into("<I", data, names.index("cs") * 4, 0)
    if not host.setregs(GdbRegs(bytes(data))):
        raise RuntimeError("failed to set the reference registers")

    for _ in range(_X86_BOOT_STEPS):
        host.step()


def _boot_sector() -> Optional[bytes]:
    return _X86_MBR