"""Emulator state codes, ANSI colouring and register comparison."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum

logger = logging.getLogger(__name__)


class NemuState(IntEnum):
    """Run state of the emulator."""

    RUNNING = 0
    STOP = 1
    END = 2
    ABORT = 3
    QUIT = 4


class Color(str, Enum):
    """ANSI colour escape sequences."""

    FG_BLACK = "\33[1;30m"
    FG_RED = "\33[1;31m"
    FG_GREEN = "\33[1;32m"
    FG_YELLOW = "\33[1;33m"
    FG_BLUE = "\33[1;34m"
    FG_MAGENTA = "\33[1;35m"
    FG_CYAN = "\33[1;36m"
    FG_WHITE = "\33[1;37m"
    BG_BLACK = "\33[1;40m"
    BG_RED = "\33[1;41m"
    BG_GREEN = "\33[1;42m"
    BG_YELLOW = "\33[1;43m"
    BG_BLUE = "\33[1;44m"
    BG_MAGENTA = "\33[1;45m"
    BG_CYAN = "\33[1;46m"
    BG_WHITE = "\33[1;47m"
    NONE = "\33[0m"


def ansi_fmt(text: str, color: Color) -> str:
    """Wrap ``text`` in ``color`` and a reset sequence."""
    return f"{color.value}{text}{Color.NONE.value}"


def format_word(value: int, width: int = 32) -> str:
    """Format a machine word of ``width`` bits (32 or 64) as zero-padded hex."""
    if width not in (32, 64):
        raise ValueError(f"word width must be 32 or 64, got {width}")
    digits = width // 4
    return f"0x{value & ((1 << width) - 1):0{digits}x}"


def check_reg(name: str, pc: int, ref: int, dut: int, width: int = 32) -> bool:
    """Return True if the reference and tested values agree; log a mismatch."""
    if ref == dut:
        return True
    logger.warning(
        "%s is different after executing instruction at pc = %s, "
        "right = %s, wrong = %s, diff = %s",
        name,
        format_word(pc, width),
        format_word(ref, width),
        format_word(dut, width),
        format_word(ref ^ dut, width),
    )
    return False