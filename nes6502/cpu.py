"""Fetch-execute loop with cycle accounting."""

from __future__ import annotations

from collections.abc import MutableSequence

from nes6502.execute import execute_instruction
from nes6502.opcodes import AddrMode, parse_instruction
from nes6502.processor import Processor

MEMORY_SIZE = 0x10000


def _page(address: int) -> int:
    return address & 0xFF00


def _extra_cycles(instr, memory: MutableSequence[int], processor: Processor, old_pc: int) -> int:
    """Cycles added for page crossings and taken branches."""
    mode = instr.addr_mode
    if mode is AddrMode.ABSX:
        return int(_page(instr.addr + processor.x) != _page(instr.addr))
    if mode is AddrMode.ABSY:
        return int(_page(instr.addr + processor.y) != _page(instr.addr))
    if mode is AddrMode.INDY:
        base = (memory[(instr.addr + 1) & 0xFFFF] << 8) | memory[instr.addr & 0xFFFF]
        return int(_page(base + processor.y) != _page(base))
    if mode is AddrMode.REL and processor.pc != old_pc + instr.length:
        return 1 + int(_page(processor.pc) != _page(old_pc))
    return 0


def step(memory: MutableSequence[int], processor: Processor) -> int:
    """Run the instruction at the program counter and return its cycle count.

    Raises InvalidOpcodeError if the byte there is not a known opcode.
    """
    old_pc = processor.pc
    instr = parse_instruction(memory, processor.pc)
    execute_instruction(instr, memory, processor)
    processor.pc = (processor.pc + instr.length) & 0xFFFF
    return instr.cycles + _extra_cycles(instr, memory, processor, old_pc)


class CPU:
    """A processor attached to its memory, counting elapsed cycles."""

    def __init__(
        self,
        memory: MutableSequence[int] | None = None,
        processor: Processor | None = None,
    ) -> None:
        self.memory = memory if memory is not None else bytearray(MEMORY_SIZE)
        self.processor = processor if processor is not None else Processor()
        self.cycles = 0

    def step(self) -> int:
        """Run one instruction and return the cycles it took."""
        taken = step(self.memory, self.processor)
        self.cycles += taken
        return taken

    def run(self, max_steps: int | None = None) -> int:
        """Run until the processor halts or ``max_steps`` instructions have run.

        Returns the number of cycles spent during this call.
        """
        spent = 0
        steps = 0
        while not self.processor.halted and (max_steps is None or steps < max_steps):
            spent += self.step()
            steps += 1
        return spent