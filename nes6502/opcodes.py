"""Opcode table and instruction decoding for the 6502 core."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto


class AddrMode(Enum):
    """Addressing modes understood by the decoder."""

    IMPL = auto()
    ACCUM = auto()
    IMM = auto()
    ZP = auto()
    ZPX = auto()
    ZPY = auto()
    REL = auto()
    ABS = auto()
    ABSX = auto()
    ABSY = auto()
    IND = auto()
    INDX = auto()
    INDY = auto()


class InvalidOpcodeError(ValueError):
    """Raised when the byte at the program counter is not a known opcode."""

    def __init__(self, opcode: int, pc: int) -> None:
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"${pc:04x}: Invalid opcode 0x{opcode:02x}")


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction and its operand."""

    opcode: int
    name: str
    addr_mode: AddrMode
    cycles: int
    length: int
    imm: int = 0
    addr: int = 0
    offset: int = 0


_M = AddrMode

_OPCODE_GROUPS: dict[str, tuple[tuple[int, AddrMode, int], ...]] = {
    "ADC": ((0x69, _M.IMM, 2), (0x65, _M.ZP, 3), (0x75, _M.ZPX, 4), (0x6D, _M.ABS, 4),
            (0x7D, _M.ABSX, 4), (0x79, _M.ABSY, 4), (0x61, _M.INDX, 6), (0x71, _M.INDY, 5)),
    "AND": ((0x29, _M.IMM, 2), (0x25, _M.ZP, 3), (0x35, _M.ZPX, 4), (0x2D, _M.ABS, 4),
            (0x3D, _M.ABSX, 4), (0x39, _M.ABSY, 4), (0x21, _M.INDX, 6), (0x31, _M.INDY, 5)),
    "ASL": ((0x0A, _M.ACCUM, 2), (0x06, _M.ZP, 5), (0x16, _M.ZPX, 6), (0x0E, _M.ABS, 6),
            (0x1E, _M.ABSX, 7)),
    "BCC": ((0x90, _M.REL, 2),),
    "BCS": ((0xB0, _M.REL, 2),),
    "BEQ": ((0xF0, _M.REL, 2),),
    "BIT": ((0x24, _M.ZP, 3), (0x2C, _M.ABS, 4)),
    "BMI": ((0x30, _M.REL, 2),),
    "BNE": ((0xD0, _M.REL, 2),),
    "BPL": ((0x10, _M.REL, 2),),
    "BRK": ((0x00, _M.IMPL, 7),),
    "BVC": ((0x50, _M.REL, 2),),
    "BVS": ((0x70, _M.REL, 2),),
    "CLC": ((0x18, _M.IMPL, 2),),
    "CLD": ((0xD8, _M.IMPL, 2),),
    "CLI": ((0x58, _M.IMPL, 2),),
    "CLV": ((0xB8, _M.IMPL, 2),),
    "CMP": ((0xC9, _M.IMM, 2), (0xC5, _M.ZP, 3), (0xD5, _M.ZPX, 4), (0xCD, _M.ABS, 4),
            (0xDD, _M.ABSX, 4), (0xD9, _M.ABSY, 4), (0xC1, _M.INDX, 6), (0xD1, _M.INDY, 5)),
    "CPX": ((0xE0, _M.IMM, 2), (0xE4, _M.ZP, 3), (0xEC, _M.ABS, 4)),
    "CPY": ((0xC0, _M.IMM, 2), (0xC4, _M.ZP, 3), (0xCC, _M.ABS, 4)),
    "DEC": ((0xC6, _M.ZP, 5), (0xD6, _M.ZPX, 6), (0xCE, _M.ABS, 6), (0xDE, _M.ABSX, 7)),
    "DEX": ((0xCA, _M.IMPL, 2),),
    "DEY": ((0x88, _M.IMPL, 2),),
    "EOR": ((0x49, _M.IMM, 2), (0x45, _M.ZP, 3), (0x55, _M.ZPX, 4), (0x4D, _M.ABS, 4),
            (0x5D, _M.ABSX, 4), (0x59, _M.ABSY, 4), (0x41, _M.INDX, 6), (0x51, _M.INDY, 5)),
    "INC": ((0xE6, _M.ZP, 5), (0xF6, _M.ZPX, 6), (0xEE, _M.ABS, 6), (0xFE, _M.ABSX, 7)),
    "INX": ((0xE8, _M.IMPL, 2),),
    "INY": ((0xC8, _M.IMPL, 2),),
    "JMP": ((0x4C, _M.ABS, 3), (0x6C, _M.IND, 5)),
    "JSR": ((0x20, _M.ABS, 6),),
    "LDA": ((0xA9, _M.IMM, 2), (0xA5, _M.ZP, 3), (0xB5, _M.ZPX, 4), (0xAD, _M.ABS, 4),
            (0xBD, _M.ABSX, 4), (0xB9, _M.ABSY, 4), (0xA1, _M.INDX, 6), (0xB1, _M.INDY, 5)),
    "LDX": ((0xA2, _M.IMM, 2), (0xA6, _M.ZP, 3), (0xB6, _M.ZPY, 4), (0xAE, _M.ABS, 4),
            (0xBE, _M.ABSY, 4)),
    "LDY": ((0xA0, _M.IMM, 2), (0xA4, _M.ZP, 3), (0xB4, _M.ZPX, 4), (0xAC, _M.ABS, 4),
            (0xBC, _M.ABSX, 4)),
    "LSR": ((0x4A, _M.ACCUM, 2), (0x46, _M.ZP, 5), (0x56, _M.ZPX, 6), (0x4E, _M.ABS, 6),
            (0x5E, _M.ABSX, 7)),
    "NOP": ((0xEA, _M.IMPL, 2),),
    "ORA": ((0x09, _M.IMM, 2), (0x05, _M.ZP, 3), (0x15, _M.ZPX, 4), (0x0D, _M.ABS, 4),
            (0x1D, _M.ABSX, 4), (0x19, _M.ABSY, 4), (0x01, _M.INDX, 6), (0x11, _M.INDY, 5)),
    "PHA": ((0x48, _M.IMPL, 3),),
    "PHP": ((0x08, _M.IMPL, 3),),
    "PLA": ((0x68, _M.IMPL, 4),),
    "PLP": ((0x28, _M.IMPL, 4),),
    "ROL": ((0x2A, _M.ACCUM, 2), (0x26, _M.ZP, 5), (0x36, _M.ZPX, 6), (0x2E, _M.ABS, 6),
            (0x3E, _M.ABSX, 7)),
    "ROR": ((0x6A, _M.ACCUM, 2), (0x66, _M.ZP, 5), (0x76, _M.ZPX, 6), (0x6E, _M.ABS, 6),
            (0x7E, _M.ABSX, 7)),
    "RTI": ((0x40, _M.IMPL, 6),),
    "RTS": ((0x60, _M.IMPL, 6),),
    "SBC": ((0xE9, _M.IMM, 2), (0xE5, _M.ZP, 3), (0xF5, _M.ZPX, 4), (0xED, _M.ABS, 4),
            (0xFD, _M.ABSX, 4), (0xF9, _M.ABSY, 4), (0xE1, _M.INDX, 6), (0xF1, _M.INDY, 5)),
    "SEC": ((0x38, _M.IMPL, 2),),
    "SED": ((0xF8, _M.IMPL, 2),),
    "SEI": ((0x78, _M.IMPL, 2),),
    "STA": ((0x85, _M.ZP, 3), (0x95, _M.ZPX, 4), (0x8D, _M.ABS, 4), (0x9D, _M.ABSX, 5),
            (0x99, _M.ABSY, 5), (0x81, _M.INDX, 6), (0x91, _M.INDY, 6)),
    "STX": ((0x86, _M.ZP, 3), (0x96, _M.ZPY, 4), (0x8E, _M.ABS, 4)),
    "STY": ((0x84, _M.ZP, 3), (0x94, _M.ZPX, 4), (0x8C, _M.ABS, 4)),
    "TAX": ((0xAA, _M.IMPL, 2),),
    "TAY": ((0xA8, _M.IMPL, 2),),
    "TSX": ((0xBA, _M.IMPL, 2),),
    "TXA": ((0x8A, _M.IMPL, 2),),
    "TXS": ((0x9A, _M.IMPL, 2),),
    "TYA": ((0x98, _M.IMPL, 2),),
    # Unofficial opcodes, added as target games need them.
    "NOP ($1A)": ((0x1A, _M.IMPL, 2),),
    "NOP ($1C)": ((0x1C, _M.ABSX, 4),),
    "SLO": ((0x1F, _M.ABSX, 7),),
}

_OPCODES: dict[int, tuple[str, AddrMode, int]] = {
    opcode: (name, mode, cycles)
    for name, entries in _OPCODE_GROUPS.items()
    for opcode, mode, cycles in entries
}

_LENGTHS: dict[AddrMode, int] = {
    _M.IMPL: 1,
    _M.ACCUM: 1,
    _M.IMM: 2,
    _M.ZP: 2,
    _M.ZPX: 2,
    _M.ZPY: 2,
    _M.REL: 2,
    _M.ABS: 3,
    _M.ABSX: 3,
    _M.ABSY: 3,
    _M.IND: 3,
    _M.INDX: 2,
    _M.INDY: 2,
}

_SINGLE_BYTE_ADDR = {_M.ZP, _M.ZPX, _M.ZPY, _M.INDX, _M.INDY}
_WORD_ADDR = {_M.ABS, _M.ABSX, _M.ABSY, _M.IND}


def _byte_at(memory: Sequence[int], address: int) -> int:
    return memory[address & 0xFFFF]


def parse_instruction(memory: Sequence[int], pc: int) -> Instruction:
    """Decode the instruction found at ``pc``.

    Raises InvalidOpcodeError if the byte there is not a known opcode.
    """
    opcode = _byte_at(memory, pc)
    try:
        name, mode, cycles = _OPCODES[opcode]
    except KeyError:
        raise InvalidOpcodeError(opcode, pc) from None

    imm = addr = offset = 0
    if mode is _M.IMM:
        imm = _byte_at(memory, pc + 1)
    elif mode is _M.REL:
        raw = _byte_at(memory, pc + 1)
        offset = raw - 0x100 if raw & 0x80 else raw
    elif mode in _SINGLE_BYTE_ADDR:
        addr = _byte_at(memory, pc + 1)
    elif mode in _WORD_ADDR:
        addr = (_byte_at(memory, pc + 2) << 8) | _byte_at(memory, pc + 1)

    return Instruction(
        opcode=opcode,
        name=name,
        addr_mode=mode,
        cycles=cycles,
        length=_LENGTHS[mode],
        imm=imm,
        addr=addr,
        offset=offset,
    )