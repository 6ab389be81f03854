# nes6502

nes6502 is an emulator core for the MOS 6502 processor as used in the NES. It
has no dependencies. It decodes and executes the official 6502 instruction set
and three unofficial opcodes: `NOP $1A`, `NOP $1C` and `SLO $1F`. It counts
cycles, including the extra cycles for page crossings and taken branches.

## Installation

```
pip install .
```

## Usage

Memory is any mutable sequence of byte values, normally a 64 KiB `bytearray`.
The registers are held in a `Processor` dataclass with the fields `pc`, `s`,
`p`, `a`, `x`, `y` and `halted`. The defaults are `pc=0x0000`, `s=0xFF` and
`p=0x30`. All other registers start at zero.

```python
from nes6502.processor import Processor
from nes6502.cpu import CPU

memory = bytearray(0x10000)
memory[0x0600:0x0602] = bytes([0xA9, 0x69])   # LDA #$69

processor = Processor(pc=0x0600)
cpu = CPU(memory, processor)
cycles = cpu.step()

assert processor.a == 0x69
assert processor.pc == 0x0602
assert cycles == 2
```

The arguments to `CPU` are optional. Without them it creates a zeroed 64 KiB
`bytearray` and a default `Processor`.

- `CPU.step()` runs one instruction and returns the cycles it took.
- `CPU.cycles` holds the running total of cycles.
- `CPU.run(max_steps=None)` runs instructions until the processor halts, or
  until `max_steps` instructions have run. It returns the cycles spent during
  that call.

A `BRK` whose IRQ vector at `$FFFE`/`$FFFF` is `$0000` sets
`processor.halted`.

### Lower-level pieces

- `nes6502.opcodes.parse_instruction(memory, pc)` decodes the instruction at
  `pc` into a frozen `Instruction` with these fields:
  - `opcode`
  - `name`
  - `addr_mode`, an `AddrMode`
  - `cycles`, the base cycle count
  - `length`
  - `imm`, `addr` or `offset`, depending on the addressing mode

  An unknown opcode raises `InvalidOpcodeError`, which is a subclass of
  `ValueError`.
- `nes6502.addressing.get_address(instr, memory, processor)` resolves the
  effective address of an instruction. `get_value(instr, memory, processor)`
  resolves the operand byte. Each raises `ValueError` for an addressing mode
  that has no address, or no value, respectively.
- `nes6502.execute.execute_instruction(instr, memory, processor)` carries out
  one decoded instruction in place. It leaves the program counter so that
  adding the instruction length afterwards reaches the next instruction.
- `nes6502.cpu.step(memory, processor)` fetches, decodes and executes one
  instruction, advances the program counter, and returns the number of
  cycles.
- `Processor.get_flag` and `Processor.set_flag` read and write status flags.
  They take a `Flag` member or its one-letter name (`"N"`, `"V"`, `"B"`,
  `"D"`, `"I"`, `"Z"`, `"C"`). Any other name raises `ValueError`.
- `Processor.push(memory, value)` and `Processor.pull(memory)` work on the
  hardware stack at `$0100`–`$01FF`.

## What it does not do

This package is the processor core only. It has:

- no command-line program;
- no cartridge or ROM loading;
- no picture or audio unit;
- no controller input;
- no memory mapping;
- no interrupt lines apart from `BRK`.

The decimal flag can be set and cleared, but arithmetic is always binary.

## Running the tests

```
pip install .[test]
pytest
```