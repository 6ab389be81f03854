"""Operand resolution for each addressing mode."""

from __future__ import annotations

from collections.abc import Sequence

from nes6502.opcodes import AddrMode, Instruction
from nes6502.processor import Processor

_M = AddrMode

_NO_OPERAND = frozenset({_M.IMPL, _M.ACCUM})
_VALUE_FROM_MEMORY = frozenset(
    {_M.ZP, _M.ZPX, _M.ZPY, _M.ABS, _M.ABSX, _M.ABSY, _M.INDX, _M.INDY}
)


def _read(memory: Sequence[int], address: int) -> int:
    return memory[address & 0xFFFF]


def _read_pointer(memory: Sequence[int], address: int) -> int:
    """Read a little-endian 16-bit pointer stored at ``address``."""
    return (_read(memory, address + 1) << 8) | _read(memory, address)


def get_address(instr: Instruction, memory: Sequence[int], processor: Processor) -> int:
    """Return the effective memory address used by ``instr``.

    Implied and accumulator instructions have no address and yield 0.
    Raises ValueError for modes that carry no address, such as immediate.
    """
    mode = instr.addr_mode
    if mode in _NO_OPERAND:
        return 0
    if mode in (_M.ZP, _M.ABS):
        address = instr.addr
    elif mode in (_M.ZPX, _M.ABSX):
        address = instr.addr + processor.x
    elif mode in (_M.ZPY, _M.ABSY):
        address = instr.addr + processor.y
    elif mode is _M.REL:
        address = processor.pc + instr.offset
    elif mode is _M.IND:
        address = _read_pointer(memory, instr.addr)
    elif mode is _M.INDX:
        address = _read_pointer(memory, instr.addr + processor.x)
    elif mode is _M.INDY:
        address = _read_pointer(memory, instr.addr) + processor.y
    else:
        raise ValueError("Instruction doesn't support that addressing mode")
    return address & 0xFFFF


def get_value(instr: Instruction, memory: Sequence[int], processor: Processor) -> int:
    """Return the operand byte that ``instr`` works on.

    Implied instructions yield 0. Raises ValueError for modes that do not
    produce a value (relative and indirect).
    """
    mode = instr.addr_mode
    if mode is _M.IMPL:
        return 0
    if mode is _M.ACCUM:
        return processor.a
    if mode is _M.IMM:
        return instr.imm
    if mode in _VALUE_FROM_MEMORY:
        return _read(memory, get_address(instr, memory, processor))
    raise ValueError("Addressing mode doesn't return a value")