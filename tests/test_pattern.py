import pytest

from gdbdiff.pattern import (
    Pattern,
    PatternError,
    PatternTable,
    pattern_decode,
    pattern_decode_hex,
)


def test_trailing_wildcards_become_shift():
    p = pattern_decode("10??")
    assert p == Pattern(key=0b10, mask=0b11, shift=2)


def test_spaces_are_ignored():
    assert pattern_decode("10 01") == pattern_decode("1001")


def test_binary_pattern_matches_exactly_the_fixed_bits():
    p = pattern_decode("1?0?")
    for inst in range(16):
        expected = (inst >> 3) & 1 == 1 and (inst >> 1) & 1 == 0
        assert p.matches(inst) == expected


def test_riscv_style_pattern():
    p = pattern_decode("??????? ????? ????? 000 ????? 00100 11")
    addi = (5 << 20) | (1 << 15) | (0b000 << 12) | (2 << 7) | 0b0010011
    slti = (5 << 20) | (1 << 15) | (0b010 << 12) | (2 << 7) | 0b0010011
    assert p.matches(addi)
    assert not p.matches(slti)


@pytest.mark.parametrize("text", ["10x1", "12", "1 0 a"])
def test_invalid_character_raises(text):
    with pytest.raises(PatternError):
        pattern_decode(text)


def test_length_limit():
    assert pattern_decode("1" * 63).matches((1 << 63) - 1)
    with pytest.raises(PatternError):
        pattern_decode("1" * 64)


def test_hex_pattern():
    p = pattern_decode_hex("1f??")
    assert p == Pattern(key=0x1F, mask=0xFF, shift=8)
    assert p.matches(0x1FAB)
    assert not p.matches(0x2FAB)


def test_hex_middle_wildcard():
    p = pattern_decode_hex("a?c")
    assert p.matches(0xA0C)
    assert p.matches(0xAFC)
    assert not p.matches(0xAFD)


def test_hex_rejects_uppercase_and_long():
    with pytest.raises(PatternError):
        pattern_decode_hex("1F")
    with pytest.raises(PatternError):
        pattern_decode_hex("0" * 16)


def test_table_first_match_wins():
    table = PatternTable()
    table.add("1???", "specific")
    table.add("????", "fallback")
    assert len(table) == 2
    assert table.match(0b1010) == "specific"
    assert table.match(0b0010) == "fallback"


def test_table_no_match_returns_none():
    table = PatternTable()
    table.add(pattern_decode_hex("ff"), "only")
    assert table.match(0xFE) is None
    assert table.match(0xFF) == "only"