"""Processor registers, status flags and the hardware stack."""

from __future__ import annotations

from collections.abc import MutableSequence
from dataclasses import dataclass
from enum import Enum

STACK_BASE = 0x0100


class Flag(Enum):
    """Bits of the processor status register."""

    N = 0b10000000
    V = 0b01000000
    B = 0b00010000
    D = 0b00001000
    I = 0b00000100  # noqa: E741
    Z = 0b00000010
    C = 0b00000001

    @property
    def mask(self) -> int:
        return self.value

    @classmethod
    def coerce(cls, flag: Flag | str) -> Flag:
        """Accept a Flag or its one-letter name."""
        if isinstance(flag, cls):
            return flag
        if isinstance(flag, str):
            try:
                return cls[flag]
            except KeyError:
                pass
        raise ValueError(f"Invalid flag {flag!r}")


@dataclass
class Processor:
    """Register file of the CPU."""

    pc: int = 0x0000
    s: int = 0xFF
    p: int = 0x30
    a: int = 0x00
    x: int = 0x00
    y: int = 0x00
    halted: bool = False

    def get_flag(self, flag: Flag | str) -> bool:
        """Return whether the given status flag is set."""
        return bool(self.p & Flag.coerce(flag).mask)

    def set_flag(self, flag: Flag | str, value: object) -> None:
        """Set or clear the given status flag."""
        mask = Flag.coerce(flag).mask
        self.p = (self.p & ~mask & 0xFF) | (mask if value else 0)

    def push(self, memory: MutableSequence[int], value: int) -> None:
        """Push a byte onto the stack at $0100-$01FF."""
        memory[STACK_BASE + self.s] = value & 0xFF
        self.s = (self.s - 1) & 0xFF

    def pull(self, memory: MutableSequence[int]) -> int:
        """Remove and return the byte on top of the stack."""
        self.s = (self.s + 1) & 0xFF
        return memory[STACK_BASE + self.s]