# gdbdiff

`gdbdiff` helps you check an instruction-set emulator against QEMU, one
instruction at a time. It starts QEMU with its GDB stub, talks the GDB remote
serial protocol to it, and copies memory and registers between your emulator
(the DUT) and QEMU (the REF), so the two can be stepped together and compared.

It also holds small helpers that an emulator needs around that loop.

## Modules

- `gdbdiff.bits`: `bitmask`, `bits` (extract `x[hi:lo]`), `sext` (sign-extend
  to an unsigned 64-bit value), `roundup` and `rounddown` (power-of-two
  alignment; other alignments raise `ValueError`).
- `gdbdiff.pattern`: instruction patterns. `pattern_decode` reads strings of
  `0`, `1`, `?` and spaces, such as `"??????? ????? ????? 000 ????? 00100 11"`;
  `pattern_decode_hex` reads lower-case hex digits, `?` and spaces. Both return
  a `Pattern` whose `matches(inst)` tests an instruction word, and raise
  `PatternError` for a bad character or a pattern that is too long.
  `PatternTable.add(pattern, handler)` appends an entry (a string is decoded as
  binary) and `PatternTable.match(inst)` returns the handler of the first
  matching pattern, or `None`.
- `gdbdiff.memory`: `host_read` and `host_write` access 1, 2, 4 or 8 byte
  little-endian values in a buffer. `PhysicalMemory(base=0x80000000,
  size=0x8000000)` holds guest memory with `in_pmem`, `guest_to_host`,
  `host_to_guest`, `read` and `write`; accesses outside it raise
  `MemoryAccessError`, unsupported lengths raise `ValueError`.
- `gdbdiff.console`: `NemuState` run states, `Color` ANSI escapes,
  `ansi_fmt`, `format_word` (zero-padded hex for 32 or 64-bit words) and
  `check_reg`.
- `gdbdiff.protocol`: a GDB remote protocol client. `encode_packet`,
  `decode_packet` (with escapes and run-length encoding), `packet_checksum`,
  `hex_encode`, `decode_hex`, `decode_hex_str`, and `GdbConnection` with
  `connect`, `send`, `recv`, `start_noack` and `close`; it is a context
  manager. A closed peer raises `ConnectionClosedError`.
- `gdbdiff.isa`: `Isa` (mips32, riscv32, riscv64, x86, loongarch32r),
  `IsaConfig` (register size, QEMU binary and arguments, GDB register names;
  `rve=True` for RISC-V only) and `GdbRegs` for the raw register buffer.
- `gdbdiff.gdb_host`: `GdbHost` with `connect` (retries until the server
  accepts), `memcpy_to_qemu` (sent in chunks of 1500 bytes), `getregs`,
  `setregs`, `step` and `close`; `init_isa` loads a boot sector that puts an
  x86 guest in protected mode and does nothing for the other ISAs.
- `gdbdiff.difftest`: `QemuReference` and `Direction` (`TO_DUT`, `TO_REF`).

## Installation

```
pip install .
```

QEMU is not included; the binary for your guest ISA (for example
`qemu-system-riscv32`) has to be on `PATH`. For mips32 the QEMU kernel is
looked up under `$NEMU_HOME/resource/mips-elf/mips.dummy`, or under the
`nemu_home` given to `QemuReference`.

## Usage

```python
from gdbdiff.isa import Isa, IsaConfig
from gdbdiff.difftest import Direction, QemuReference

config = IsaConfig(Isa.RISCV32)

with QemuReference(config) as ref:
    ref.start(1234)
    ref.memcpy(0x80000000, image_bytes, Direction.TO_REF)
    ref.regcpy(dut_register_bytes, Direction.TO_REF)

    ref.exec(1)
    ref_registers = ref.regcpy(None, Direction.TO_DUT)
```

`start` launches QEMU halted with its GDB stub on the given port, connects,
prints a line saying so and prepares the guest with `init_isa`. `regcpy` with
`TO_REF` writes the first `config.reg_size()` bytes of the given state into
the reference; with `TO_DUT` it returns that many bytes of the reference's
registers. `memcpy` copies only toward the reference; another direction raises
`ValueError`, and a rejected write raises `RuntimeError`. `close`, also run on
leaving the `with` block and at interpreter exit, ends the GDB session and
stops QEMU.

Register values can be compared with `check_reg`:

```python
from gdbdiff.console import check_reg

ok = check_reg("pc", pc=0x80000000, ref=0x80000004, dut=0x80000008, width=32)
```

When the values differ it logs a warning through the `gdbdiff.console` logger
naming the register, the pc, the right value, the wrong value and their XOR,
and returns `False`.

## What it does not do

`gdbdiff` is not an emulator: it has no CPU, instruction set or devices of its
own, and no command-line tool. The QEMU reference cannot inject interrupts;
`QemuReference.raise_intr` always raises `RuntimeError`.

## Testing

```
pip install .[test]
pytest
```