"""Differential testing of emulators against QEMU over the GDB remote protocol, with emulator helpers."""

__version__ = "0.1.0"

__all__ = [
    "bits",
    "pattern",
    "memory",
    "console",
    "protocol",
    "isa",
    "gdb_host",
    "difftest",
]