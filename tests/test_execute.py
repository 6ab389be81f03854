import pytest

from nes6502.execute import execute_instruction
from nes6502.opcodes import AddrMode, Instruction, InvalidOpcodeError, parse_instruction
from nes6502.processor import Processor


@pytest.fixture
def memory():
    return bytearray(0x10000)


@pytest.fixture
def cpu():
    return Processor(pc=0x0600, s=0xFF, p=0x30, a=0x00, x=0x00, y=0x00)


def run_one(memory, processor):
    """Fetch, execute and advance once; return the cycles spent."""
    old_pc = processor.pc
    instr = parse_instruction(memory, processor.pc)
    execute_instruction(instr, memory, processor)
    processor.pc = (processor.pc + instr.length) & 0xFFFF

    cycles = instr.cycles
    mode = instr.addr_mode
    if mode is AddrMode.ABSX:
        if ((instr.addr + processor.x) & 0xFF00) != (instr.addr & 0xFF00):
            cycles += 1
    elif mode is AddrMode.ABSY:
        if ((instr.addr + processor.y) & 0xFF00) != (instr.addr & 0xFF00):
            cycles += 1
    elif mode is AddrMode.INDY:
        base = (memory[instr.addr + 1] << 8) | memory[instr.addr]
        if ((base + processor.y) & 0xFF00) != (base & 0xFF00):
            cycles += 1
    elif mode is AddrMode.REL:
        if processor.pc != old_pc + instr.length:
            cycles += 1
            if (processor.pc & 0xFF00) != (old_pc & 0xFF00):
                cycles += 1
    return cycles


def load(memory, values):
    for address, value in values.items():
        memory[address] = value


# ---------- BRK ----------

def test_brk(memory, cpu):
    cpu.p = 0x22
    load(memory, {0x0600: 0x00, 0xFFFE: 0x20, 0xFFFF: 0x10})
    cycles = run_one(memory, cpu)
    assert cpu.p == 0x32
    assert cpu.pc == 0x1020
    assert cpu.s == 0xFC
    assert memory[0x01FF] == 0x06
    assert memory[0x01FE] == 0x02
    assert memory[0x01FD] == 0x32
    assert cycles == 7
    assert cpu.halted is False


def test_brk_with_empty_vector_halts(memory, cpu):
    memory[0x0600] = 0x00
    run_one(memory, cpu)
    assert cpu.halted is True


# ---------- CMP ----------

@pytest.mark.parametrize(
    "registers, values, expected_cycles",
    [
        ({}, {0x0600: 0xC9, 0x0601: 0x42}, 2),
        ({}, {0x0010: 0x42, 0x0600: 0xC5, 0x0601: 0x10}, 3),
        ({"x": 0x05}, {0x0015: 0x42, 0x0600: 0xD5, 0x0601: 0x10}, 4),
        ({}, {0x1020: 0x42, 0x0600: 0xCD, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"x": 0x05}, {0x1025: 0x42, 0x0600: 0xDD, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"y": 0x05}, {0x1025: 0x42, 0x0600: 0xD9, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"x": 0x05}, {0x0015: 0x20, 0x0016: 0x10, 0x1020: 0x42, 0x0600: 0xC1, 0x0601: 0x10}, 6),
        ({"y": 0x05}, {0x0010: 0x20, 0x0011: 0x10, 0x1025: 0x42, 0x0600: 0xD1, 0x0601: 0x10}, 5),
        ({"x": 0xFF}, {0x111F: 0x42, 0x0600: 0xDD, 0x0601: 0x20, 0x0602: 0x10}, 5),
        ({"y": 0xFF}, {0x111F: 0x42, 0x0600: 0xD9, 0x0601: 0x20, 0x0602: 0x10}, 5),
    ],
    ids=["imm", "zp", "zpx", "abs", "absx", "absy", "indx", "indy", "absx_page", "absy_page"],
)
def test_cmp_modes(memory, cpu, registers, values, expected_cycles):
    cpu.a = 0x69
    for name, value in registers.items():
        setattr(cpu, name, value)
    load(memory, values)
    cycles = run_one(memory, cpu)
    assert cpu.a == 0x69
    assert cpu.p == 0x31
    assert cycles == expected_cycles


@pytest.mark.parametrize(
    "a, operand, expected_p",
    [(0x69, 0x69, 0x33), (0x42, 0x69, 0xB0), (0x69, 0x42, 0x31)],
    ids=["equal", "greater_than", "less_than"],
)
def test_cmp_results(memory, cpu, a, operand, expected_p):
    cpu.a = a
    load(memory, {0x0600: 0xC9, 0x0601: operand})
    cycles = run_one(memory, cpu)
    assert cpu.a == a
    assert cpu.p == expected_p
    assert cycles == 2


def test_cpx_and_cpy(memory, cpu):
    cpu.x = 0x10
    cpu.y = 0x05
    load(memory, {0x0600: 0xE0, 0x0601: 0x10, 0x0602: 0xC0, 0x0603: 0x06})
    run_one(memory, cpu)
    assert cpu.p == 0x33
    run_one(memory, cpu)
    assert cpu.p == 0xB0


# ---------- DEC / DEX / DEY ----------

@pytest.mark.parametrize(
    "x, values, address, expected_cycles",
    [
        (0x00, {0x0010: 0x6A, 0x0600: 0xC6, 0x0601: 0x10}, 0x0010, 5),
        (0x05, {0x0015: 0x6A, 0x0600: 0xD6, 0x0601: 0x10}, 0x0015, 6),
        (0x00, {0x1020: 0x6A, 0x0600: 0xCE, 0x0601: 0x20, 0x0602: 0x10}, 0x1020, 6),
        (0x05, {0x1025: 0x6A, 0x0600: 0xDE, 0x0601: 0x20, 0x0602: 0x10}, 0x1025, 7),
    ],
    ids=["zp", "zpx", "abs", "absx"],
)
def test_dec_modes(memory, cpu, x, values, address, expected_cycles):
    cpu.x = x
    load(memory, values)
    cycles = run_one(memory, cpu)
    assert cpu.p == 0x30
    assert memory[address] == 0x69
    assert cycles == expected_cycles


@pytest.mark.parametrize(
    "start, expected, expected_p", [(0x01, 0x00, 0x32), (0x00, 0xFF, 0xB0)], ids=["zero", "neg"]
)
def test_dec_flags(memory, cpu, start, expected, expected_p):
    load(memory, {0x0010: start, 0x0600: 0xC6, 0x0601: 0x10})
    cycles = run_one(memory, cpu)
    assert cpu.p == expected_p
    assert memory[0x0010] == expected
    assert cycles == 5


@pytest.mark.parametrize("register, opcode", [("x", 0xCA), ("y", 0x88)])
@pytest.mark.parametrize(
    "start, expected, expected_p",
    [(0x6A, 0x69, 0x30), (0x01, 0x00, 0x32), (0x00, 0xFF, 0xB0)],
    ids=["plain", "zero", "neg"],
)
def test_dex_dey(memory, cpu, register, opcode, start, expected, expected_p):
    setattr(cpu, register, start)
    memory[0x0600] = opcode
    cycles = run_one(memory, cpu)
    assert getattr(cpu, register) == expected
    assert cpu.p == expected_p
    assert cycles == 2


def test_inc_and_inx(memory, cpu):
    cpu.x = 0xFF
    load(memory, {0x0010: 0x68, 0x0600: 0xE6, 0x0601: 0x10, 0x0602: 0xE8})
    run_one(memory, cpu)
    assert memory[0x0010] == 0x69
    assert cpu.p == 0x30
    run_one(memory, cpu)
    assert cpu.x == 0x00
    assert cpu.p == 0x32


# ---------- Flag operations ----------

@pytest.mark.parametrize(
    "opcode, start_p, expected_p",
    [
        (0x18, 0x31, 0x30), (0x18, 0x30, 0x30),
        (0xD8, 0x38, 0x30), (0xD8, 0x30, 0x30),
        (0x58, 0x34, 0x30), (0x58, 0x30, 0x30),
        (0xB8, 0x70, 0x30), (0xB8, 0x30, 0x30),
        (0x38, 0x31, 0x31), (0x38, 0x30, 0x31),
        (0xF8, 0x38, 0x38), (0xF8, 0x30, 0x38),
        (0x78, 0x34, 0x34), (0x78, 0x30, 0x34),
    ],
    ids=[
        "clc_set", "clc_clear", "cld_set", "cld_clear", "cli_set", "cli_clear",
        "clv_set", "clv_clear", "sec_set", "sec_clear", "sed_set", "sed_clear",
        "sei_set", "sei_clear",
    ],
)
def test_flag_operations(memory, cpu, opcode, start_p, expected_p):
    cpu.p = start_p
    memory[0x0600] = opcode
    cycles = run_one(memory, cpu)
    assert cpu.p == expected_p
    assert cycles == 2


# ---------- JMP / JSR ----------

def test_jmp_abs(memory, cpu):
    load(memory, {0x0600: 0x4C, 0x0601: 0x20, 0x0602: 0x10})
    cycles = run_one(memory, cpu)
    assert cpu.pc == 0x1020
    assert cpu.p == 0x30
    assert cycles == 3


def test_jmp_ind(memory, cpu):
    load(memory, {0x1020: 0x40, 0x1021: 0x30, 0x0600: 0x6C, 0x0601: 0x20, 0x0602: 0x10})
    cycles = run_one(memory, cpu)
    assert cpu.pc == 0x3040
    assert cpu.p == 0x30
    assert cycles == 5


def test_jsr(memory, cpu):
    load(memory, {0x0600: 0x20, 0x0601: 0x20, 0x0602: 0x10})
    cycles = run_one(memory, cpu)
    assert cpu.pc == 0x1020
    assert cpu.p == 0x30
    assert memory[0x01FF] == 0x06
    assert memory[0x01FE] == 0x02
    assert cycles == 6


# ---------- LDA ----------

@pytest.mark.parametrize(
    "registers, values, expected_cycles",
    [
        ({}, {0x0600: 0xA9, 0x0601: 0x69}, 2),
        ({}, {0x0010: 0x69, 0x0600: 0xA5, 0x0601: 0x10}, 3),
        ({"x": 0x05}, {0x0015: 0x69, 0x0600: 0xB5, 0x0601: 0x10}, 4),
        ({}, {0x1020: 0x69, 0x0600: 0xAD, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"x": 0x05}, {0x1025: 0x69, 0x0600: 0xBD, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"y": 0x05}, {0x1025: 0x69, 0x0600: 0xB9, 0x0601: 0x20, 0x0602: 0x10}, 4),
        ({"x": 0x05}, {0x0015: 0x20, 0x0016: 0x10, 0x1020: 0x69, 0x0600: 0xA1, 0x0601: 0x10}, 6),
        ({"y": 0x05}, {0x0010: 0x20, 0x0011: 0x10, 0x1025: 0x69, 0x0600: 0xB1, 0x0601: 0x10}, 5),
        ({"x": 0xFF}, {0x111F: 0x69, 0x0600: 0xBD, 0x0601: 0x20, 0x0602: 0x10}, 5),
        ({"y": 0xFF}, {0x111F: 0x69, 0x0600: 0xB9, 0x0601: 0x20, 0x0602: 0x10}, 5),
        ({"y": 0xFF}, {0x0020: 0x20, 0x0021: 0x10, 0x111F: 0x69, 0x0600: 0xB1, 0x0601: 0x20}, 6),
    ],
    ids=[
        "imm", "zp", "zpx", "abs", "absx", "absy", "indx", "indy",
        "absx_page", "absy_page", "indy_page",
    ],
)
def test_lda_modes(memory, cpu, registers, values, expected_cycles):
    for name, value in registers.items():
        setattr(cpu, name, value)
    load(memory, values)
    cycles = run_one(memory, cpu)
    assert cpu.a == 0x69
    assert cpu.p == 0x30
    assert cycles == expected_cycles


@pytest.mark.parametrize(
    "operand, expected_p", [(0x00, 0x32), (0x96, 0xB0)], ids=["zero", "neg"]
)
def test_lda_flags(memory, cpu, operand, expected_p):
    load(memory, {0x0600: 0xA9, 0x0601: operand})
    cycles = run_one(memory, cpu)
    assert cpu.a == operand
    assert cpu.p == expected_p
    assert cycles == 2


def test_ldx_and_ldy(memory, cpu):
    load(memory, {0x0600: 0xA2, 0x0601: 0x69, 0x0602: 0xA0, 0x0603: 0x96})
    run_one(memory, cpu)
    assert cpu.x == 0x69
    run_one(memory, cpu)
    assert cpu.y == 0x96
    assert cpu.p == 0xB0


# ---------- LSR ----------

def test_lsr_accum(memory, cpu):
    cpu.a = 0xCC
    memory[0x0600] = 0x4A
    run_one(memory, cpu)
    assert cpu.a == 0x66
    assert cpu.p == 0x30


@pytest.mark.parametrize(
    "x, values, address",
    [
        (0x00, {0x0010: 0xCC, 0x0600: 0x46, 0x0601: 0x10}, 0x0010),
        (0x05, {0x0015: 0xCC, 0x0600: 0x56, 0x0601: 0x10}, 0x0015),
        (0x00, {0x1020: 0xCC, 0x0600: 0x4E, 0x0601: 0x20, 0x0602: 0x10}, 0x1020),
        (0x05, {0x1025: 0xCC, 0x0600: 0x5E, 0x0601: 0x20, 0x0602: 0x10}, 0x1025),
    ],
    ids=["zp", "zpx", "abs", "absx"],
)
def test_lsr_memory(memory, cpu, x, values, address):
    cpu.x = x
    load(memory, values)
    run_one(memory, cpu)
    assert memory[address] == 0x66
    assert cpu.p == 0x30


def test_lsr_carry(memory, cpu):
    cpu.a = 0xCD
    memory[0x0600] = 0x4A
    run_one(memory, cpu)
    assert cpu.a == 0x66
    assert cpu.p == 0x31


def test_lsr_zero(memory, cpu):
    cpu.a = 0x01
    memory[0x0600] = 0x4A
    run_one(memory, cpu)
    assert cpu.a == 0x00
    assert cpu.p == 0x33


# ---------- Other instructions ----------

def test_adc_sets_overflow_and_negative(memory, cpu):
    cpu.a = 0x69
    load(memory, {0x0600: 0x69, 0x0601: 0x42})
    run_one(memory, cpu)
    assert cpu.a == 0xAB
    assert cpu.p == 0xF0


def test_sbc_with_carry_set(memory, cpu):
    cpu.a = 0x69
    cpu.p = 0x31
    load(memory, {0x0600: 0xE9, 0x0601: 0x42})
    run_one(memory, cpu)
    assert cpu.a == 0x27
    assert cpu.p == 0x31


def test_ror_memory_also_loads_accumulator(memory, cpu):
    cpu.p = 0x31
    load(memory, {0x0010: 0x02, 0x0600: 0x66, 0x0601: 0x10})
    run_one(memory, cpu)
    assert memory[0x0010] == 0x81
    assert cpu.a == 0x81
    assert cpu.p == 0xB0


def test_slo_shifts_then_ors(memory, cpu):
    cpu.a = 0x01
    load(memory, {0x1020: 0x40, 0x0600: 0x1F, 0x0601: 0x20, 0x0602: 0x10})
    run_one(memory, cpu)
    assert memory[0x1020] == 0x80
    assert cpu.a == 0x81
    assert cpu.p == 0xB0


def test_branch_taken_forward(memory, cpu):
    load(memory, {0x0600: 0xD0, 0x0601: 0x05})
    cycles = run_one(memory, cpu)
    assert cpu.pc == 0x0605
    assert cycles == 3


def test_branch_not_taken(memory, cpu):
    load(memory, {0x0600: 0xF0, 0x0601: 0x05})
    cycles = run_one(memory, cpu)
    assert cpu.pc == 0x0602
    assert cycles == 2


def test_unknown_instruction_raises(memory, cpu):
    instr = Instruction(opcode=0x02, name="KIL", addr_mode=AddrMode.IMPL, cycles=2, length=1)
    with pytest.raises(InvalidOpcodeError):
        execute_instruction(instr, memory, cpu)


def test_unused_bit_always_set(memory, cpu):
    cpu.p = 0x00
    memory[0x0600] = 0xEA
    run_one(memory, cpu)
    assert cpu.p == 0x20