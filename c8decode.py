from collections import namedtuple
from enum import Enum
import functools


class Kind(Enum):
    '''
    One member per CHIP-8 instruction.  The value is the opcode pattern as it
    appears in Cowgod's reference, which is also what the handler tables key on.
    '''
    CLS = '00E0'
    RET = '00EE'
    JP = '1nnn'
    CALL = '2nnn'
    SE_BYTE = '3xkk'
    SNE_BYTE = '4xkk'
    SE_REG = '5xy0'
    LD_BYTE = '6xkk'
    ADD_BYTE = '7xkk'
    LD_REG = '8xy0'
    OR = '8xy1'
    AND = '8xy2'
    XOR = '8xy3'
    ADD_REG = '8xy4'
    SUB = '8xy5'
    SHR = '8xy6'
    SUBN = '8xy7'
    SHL = '8xyE'
    SNE_REG = '9xy0'
    LD_I = 'Annn'
    JP_V0 = 'Bnnn'
    RND = 'Cxkk'
    DRW = 'Dxyn'
    SKP = 'Ex9E'
    SKNP = 'ExA1'
    LD_VX_DT = 'Fx07'
    LD_VX_K = 'Fx0A'
    LD_DT_VX = 'Fx15'
    LD_ST_VX = 'Fx18'
    ADD_I = 'Fx1E'
    LD_F = 'Fx29'
    LD_B = 'Fx33'
    LD_MEM_VX = 'Fx55'
    LD_VX_MEM = 'Fx65'
    UNKNOWN = '????'


Instruction = namedtuple('Instruction', ['kind', 'word', 'x', 'y', 'n', 'kk', 'nnn'])

# Used by trace listings
ListingEntry = namedtuple('ListingEntry', ['address', 'word', 'mnemonic'])


# Opcodes beginning with 8 are determined by the least-significant nibble
_8_KINDS = {
    0x0: Kind.LD_REG, 0x1: Kind.OR, 0x2: Kind.AND, 0x3: Kind.XOR,
    0x4: Kind.ADD_REG, 0x5: Kind.SUB, 0x6: Kind.SHR, 0x7: Kind.SUBN,
    0xE: Kind.SHL
}

# Opcodes beginning with E and F are determined by the least-significant byte
_E_KINDS = {
    0x9E: Kind.SKP,
    0xA1: Kind.SKNP
}

_F_KINDS = {
    0x07: Kind.LD_VX_DT,
    0x0A: Kind.LD_VX_K,
    0x15: Kind.LD_DT_VX,
    0x18: Kind.LD_ST_VX,
    0x1E: Kind.ADD_I,
    0x29: Kind.LD_F,
    0x33: Kind.LD_B,
    0x55: Kind.LD_MEM_VX,
    0x65: Kind.LD_VX_MEM
}

# Every other high nibble maps to exactly one instruction
_CLASS_KINDS = {
    0x1: Kind.JP, 0x2: Kind.CALL, 0x3: Kind.SE_BYTE, 0x4: Kind.SNE_BYTE,
    0x5: Kind.SE_REG, 0x6: Kind.LD_BYTE, 0x7: Kind.ADD_BYTE, 0x9: Kind.SNE_REG,
    0xA: Kind.LD_I, 0xB: Kind.JP_V0, 0xC: Kind.RND, 0xD: Kind.DRW
}


@functools.lru_cache(maxsize=None)
def decode(word):
    '''
    Instructions have one of 6 patterns:
    All 4 nibbles fixed:
        00E0, 00EE
    Operation + nnn (address)
        1nnn, 2nnn, Annn, Bnnn
    Operation + Vx + kk (byte)
        3xkk, 4xkk, 6xkk, 7xkk, Cxkk
    Operation + Vx + Vy + nibble-type
        5xy0, 8xy0, 8xy1, 8xy2, 8xy3,
        8xy4, 8xy5, 8xy6, 8xy7, 8xyE, 9xy0
    Operation + Vx + Vy + n (nibble)
        Dxyn
    Operation + Vx + byte-type
        Ex9E, ExA1, Fx07, Fx0A, Fx15,
        Fx18, Fx1E, Fx29, Fx33, Fx55,
        Fx65

    All the fields are extracted up front; the handler uses the ones it needs.
    Instructions are immutable, so results are cached per word.
    '''
    word &= 0xFFFF
    operation = word >> 12
    vx = word >> 8 & 0xF
    vy = word >> 4 & 0xF
    n = word & 0xF
    kk = word & 0xFF
    nnn = word & 0xFFF

    if word == 0x00E0:
        kind = Kind.CLS
    elif word == 0x00EE:
        kind = Kind.RET
    elif operation == 0x8:
        kind = _8_KINDS.get(n, Kind.UNKNOWN)
    elif operation == 0xE:
        kind = _E_KINDS.get(kk, Kind.UNKNOWN)
    elif operation == 0xF:
        kind = _F_KINDS.get(kk, Kind.UNKNOWN)
    else:
        # 0nnn (SYS addr) is not supported and falls through to UNKNOWN
        kind = _CLASS_KINDS.get(operation, Kind.UNKNOWN)
    return Instruction(kind, word, vx, vy, n, kk, nnn)


def _hex(value, width):
    return hex(value)[2:].upper().zfill(width)


_MNEMONICS = {
    Kind.CLS: 'CLS',
    Kind.RET: 'RET',
    Kind.JP: 'JP {nnn}',
    Kind.CALL: 'CALL {nnn}',
    Kind.SE_BYTE: 'SE V{x}, {kk}',
    Kind.SNE_BYTE: 'SNE V{x}, {kk}',
    Kind.SE_REG: 'SE V{x}, V{y}',
    Kind.LD_BYTE: 'LD V{x}, {kk}',
    Kind.ADD_BYTE: 'ADD V{x}, {kk}',
    Kind.LD_REG: 'LD V{x}, V{y}',
    Kind.OR: 'OR V{x}, V{y}',
    Kind.AND: 'AND V{x}, V{y}',
    Kind.XOR: 'XOR V{x}, V{y}',
    Kind.ADD_REG: 'ADD V{x}, V{y}',
    Kind.SUB: 'SUB V{x}, V{y}',
    Kind.SHR: 'SHR V{x}',
    Kind.SUBN: 'SUBN V{x}, V{y}',
    Kind.SHL: 'SHL V{x}',
    Kind.SNE_REG: 'SNE V{x}, V{y}',
    Kind.LD_I: 'LD I, {nnn}',
    Kind.JP_V0: 'JP V0, {nnn}',
    Kind.RND: 'RND V{x}, {kk}',
    Kind.DRW: 'DRW V{x}, V{y}, {n}',
    Kind.SKP: 'SKP V{x}',
    Kind.SKNP: 'SKNP V{x}',
    Kind.LD_VX_DT: 'LD V{x}, DT',
    Kind.LD_VX_K: 'LD V{x}, K',
    Kind.LD_DT_VX: 'LD DT, V{x}',
    Kind.LD_ST_VX: 'LD ST, V{x}',
    Kind.ADD_I: 'ADD I, V{x}',
    Kind.LD_F: 'LD F, V{x}',
    Kind.LD_B: 'LD B, V{x}',
    Kind.LD_MEM_VX: 'LD [I], V{x}',
    Kind.LD_VX_MEM: 'LD V{x}, [I]',
    Kind.UNKNOWN: '??? {word}'
}


def mnemonic(instruction):
    # Assembly text in Cowgod's notation, e.g. "DRW V0, V1, 5"
    return _MNEMONICS[instruction.kind].format(
        x=_hex(instruction.x, 1), y=_hex(instruction.y, 1), n=_hex(instruction.n, 1),
        kk=_hex(instruction.kk, 2), nnn=_hex(instruction.nnn, 3), word=_hex(instruction.word, 4))


def disassemble(ram, start, end=None):
    '''
    Linear listing of every non-zero word from start up to end (default: the end
    of ram).  Data bytes are listed as if they were code; this is a debugging aid,
    not a tracing disassembler.  ram is only read.
    '''
    if end is None:
        end = len(ram)
    listing = []
    for address in range(start, end - 1, 2):
        word = ram[address] << 8 | ram[address + 1]
        if word != 0:
            listing.append(ListingEntry(address, word, mnemonic(decode(word))))
    return listing


def format_listing(listing):
    return '\n'.join('{}  {}  {}'.format(_hex(entry.address, 4), _hex(entry.word, 4), entry.mnemonic)
                     for entry in listing)
