"""A QEMU process used as the reference in differential testing."""

from __future__ import annotations

import atexit
import os
import subprocess
from enum import IntEnum
from typing import Callable, Optional, Union

from gdbdiff.gdb_host import GdbHost, init_isa
from gdbdiff.isa import IsaConfig

_STOP_TIMEOUT = 5.0


class Direction(IntEnum):
    """Which side receives the copied state."""

    TO_DUT = 0
    TO_REF = 1


class QemuReference:
    """Runs QEMU under its gdbserver and mirrors state to and from it."""

    def __init__(
        self,
        config: IsaConfig,
        nemu_home: Optional[str] = None,
        launcher: Callable[..., object] = subprocess.Popen,
        host: Optional[GdbHost] = None,
    ) -> None:
        self.config = config
        self.nemu_home = nemu_home if nemu_home is not None else os.environ.get("NEMU_HOME", "")
        self._launcher = launcher
        self.host = host
        self.process = None

    def _argv(self, port: int) -> list[str]:
        binary = self.config.qemu_binary()
        return [
            binary,
            *self.config.qemu_args(self.nemu_home),
            "-S", "-gdb", f"tcp::{port}", "-nographic",
            "-serial", "none", "-monitor", "none",
        ]

    def start(self, port: int) -> None:
        """Launch QEMU, connect to its gdbserver and prepare the guest."""
        self.process = self._launcher(self._argv(port), stdin=subprocess.DEVNULL)
        host = GdbHost.connect(port)
        host.union_size = self.config.union_size
        self.host = host
        print(f"Connect to QEMU with tcp::{port} successfully")
        atexit.register(self.close)
        init_isa(host, self.config)

    def _require_host(self) -> GdbHost:
        if self.host is None:
            raise RuntimeError("the reference has not been started")
        return self.host

    def memcpy(self, addr: int, data: Union[bytes, bytearray], direction: Direction) -> None:
        """Copy ``data`` into reference memory; only ``TO_REF`` is supported."""
        if direction != Direction.TO_REF:
            raise ValueError("memory can only be copied to the reference")
        if not self._require_host().memcpy_to_qemu(addr, data):
            raise RuntimeError(f"reference rejected memory write at {addr:#x}")

    def regcpy(self, dut: Union[bytes, bytearray, None], direction: Direction) -> Optional[bytes]:
        """Push ``dut`` registers to the reference, or return the reference's registers."""
        host = self._require_host()
        size = self.config.reg_size()
        regs = host.getregs()
        if direction == Direction.TO_REF:
            if dut is None or len(dut) < size:
                raise ValueError(f"register state must hold at least {size} bytes")
            host.setregs(regs.replace_prefix(bytes(dut[:size])))
            return None
        return regs.as_bytes()[:size]

    def exec(self, n: int) -> None:
        """Single-step the reference ``n`` times."""
        host = self._require_host()
        for _ in range(n):
            host.step()

    def raise_intr(self, no: int) -> None:
        raise RuntimeError("raise_intr is not supported")

    def close(self) -> None:
        atexit.unregister(self.close)
        if self.host is not None:
            self.host.close()
            self.host = None
        if self.process is not None:
            process, self.process = self.process, None
            process.terminate()
            try:
                process.wait(timeout=_STOP_TIMEOUT)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()

    def __enter__(self) -> "QemuReference":
        return self

    def __exit__(self, *args) -> None:
        self.close()