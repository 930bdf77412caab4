from array import array

import pytest

from c8decode import Kind, decode, disassemble, format_listing, mnemonic


def test_fields_are_extracted():
    ins = decode(0xD12F)
    assert ins.kind == Kind.DRW
    assert ins.word == 0xD12F
    assert ins.x == 1
    assert ins.y == 2
    assert ins.n == 0xF
    assert ins.kk == 0x2F
    assert ins.nnn == 0x12F


@pytest.mark.parametrize("word, kind", [
    (0x00E0, Kind.CLS),
    (0x00EE, Kind.RET),
    (0x1234, Kind.JP),
    (0x2345, Kind.CALL),
    (0x3A12, Kind.SE_BYTE),
    (0x4A12, Kind.SNE_BYTE),
    (0x5AB0, Kind.SE_REG),
    (0x6A12, Kind.LD_BYTE),
    (0x7A12, Kind.ADD_BYTE),
    (0x8AB0, Kind.LD_REG),
    (0x8AB1, Kind.OR),
    (0x8AB2, Kind.AND),
    (0x8AB3, Kind.XOR),
    (0x8AB4, Kind.ADD_REG),
    (0x8AB5, Kind.SUB),
    (0x8AB6, Kind.SHR),
    (0x8AB7, Kind.SUBN),
    (0x8ABE, Kind.SHL),
    (0x9AB0, Kind.SNE_REG),
    (0xA123, Kind.LD_I),
    (0xB123, Kind.JP_V0),
    (0xCA12, Kind.RND),
    (0xDAB5, Kind.DRW),
    (0xEA9E, Kind.SKP),
    (0xEAA1, Kind.SKNP),
    (0xFA07, Kind.LD_VX_DT),
    (0xFA0A, Kind.LD_VX_K),
    (0xFA15, Kind.LD_DT_VX),
    (0xFA18, Kind.LD_ST_VX),
    (0xFA1E, Kind.ADD_I),
    (0xFA29, Kind.LD_F),
    (0xFA33, Kind.LD_B),
    (0xFA55, Kind.LD_MEM_VX),
    (0xFA65, Kind.LD_VX_MEM),
])
def test_decode_kinds(word, kind):
    assert decode(word).kind == kind


@pytest.mark.parametrize("word", [0x0000, 0x0123, 0x00E1, 0x8AB8, 0x8ABF, 0xEA00, 0xFA00, 0xFAFF])
def test_decode_unknown(word):
    assert decode(word).kind == Kind.UNKNOWN


def test_classes_5_and_9_ignore_low_nibble():
    assert decode(0x5AB3).kind == Kind.SE_REG
    assert decode(0x9AB3).kind == Kind.SNE_REG


def test_decode_is_cached():
    assert decode(0x6005) is decode(0x6005)


@pytest.mark.parametrize("word, text", [
    (0x00E0, "CLS"),
    (0x00EE, "RET"),
    (0x12A0, "JP 2A0"),
    (0x2300, "CALL 300"),
    (0x3A0F, "SE VA, 0F"),
    (0x6005, "LD V0, 05"),
    (0x8014, "ADD V0, V1"),
    (0x810E, "SHL V1"),
    (0xA050, "LD I, 050"),
    (0xB300, "JP V0, 300"),
    (0xD015, "DRW V0, V1, 5"),
    (0xE39E, "SKP V3"),
    (0xF00A, "LD V0, K"),
    (0xF433, "LD B, V4"),
    (0xF355, "LD [I], V3"),
    (0xF365, "LD V3, [I]"),
    (0x0123, "??? 0123"),
])
def test_mnemonic(word, text):
    assert mnemonic(decode(word)) == text


def test_disassemble_skips_zero_words():
    ram = array('B', [0] * 16)
    ram[4:6] = array('B', [0x60, 0x05])
    ram[10:12] = array('B', [0x00, 0xEE])
    listing = disassemble(ram, 0)
    assert [(entry.address, entry.word, entry.mnemonic) for entry in listing] == [
        (4, 0x6005, "LD V0, 05"),
        (10, 0x00EE, "RET"),
    ]
    assert list(ram[4:6]) == [0x60, 0x05]


def test_disassemble_includes_last_word():
    ram = array('B', [0] * 8)
    ram[6:8] = array('B', [0x12, 0x06])
    listing = disassemble(ram, 0)
    assert listing[-1].address == 6


def test_format_listing():
    ram = array('B', [0x60, 0x05, 0x00, 0xE0])
    assert format_listing(disassemble(ram, 0)) == "0000  6005  LD V0, 05\n0002  00E0  CLS"
