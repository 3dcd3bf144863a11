"""Data transfer and stack instructions of the 8080 execution engine."""

from __future__ import annotations

from pyi8080 import Emulator


def make_emulator(program: bytes, origin: int = 0x0000) -> Emulator:
    emulator = Emulator()
    emulator.load_program(program, origin)
    emulator.registers.pc = origin
    return emulator


def test_mov_register_to_register() -> None:
    emulator = make_emulator(bytes([0x41]))  # MOV B,C
    emulator.registers.c = 0x99
    before = emulator.registers.flags.pack()

    assert emulator.step() == 5
    assert emulator.registers.b == 0x99
    assert emulator.registers.flags.pack() == before


def test_mov_through_memory() -> None:
    emulator = make_emulator(bytes([0x77, 0x5E]))  # MOV M,A; MOV E,M
    emulator.registers.a = 0x5A
    emulator.registers.hl = 0x2345

    assert emulator.step() == 7
    assert emulator.read_memory(0x2345) == 0x5A
    assert emulator.step() == 7
    assert emulator.registers.e == 0x5A


def test_mvi_register_and_memory() -> None:
    emulator = make_emulator(bytes([0x16, 0x42, 0x36, 0x24]))  # MVI D,42; MVI M,24
    emulator.registers.hl = 0x1000

    assert emulator.step() == 7
    assert emulator.registers.d == 0x42
    assert emulator.step() == 10
    assert emulator.read_memory(0x1000) == 0x24
    assert emulator.pc == 0x0004


def test_lxi_loads_pairs_little_endian() -> None:
    emulator = make_emulator(bytes([0x01, 0x34, 0x12, 0x31, 0x00, 0x20]))  # LXI B,1234; LXI SP,2000

    assert emulator.step() == 10
    assert emulator.registers.bc == 0x1234
    emulator.step()
    assert emulator.sp == 0x2000
    assert emulator.pc == 0x0006


def test_stax_ldax() -> None:
    emulator = make_emulator(bytes([0x12, 0x0A]))  # STAX D; LDAX B
    emulator.registers.a = 0x77
    emulator.registers.de = 0x3000
    emulator.registers.bc = 0x3001
    emulator.write_memory(0x3001, 0x88)

    emulator.step()
    assert emulator.read_memory(0x3000) == 0x77
    emulator.step()
    assert emulator.registers.a == 0x88


def test_sta_lda() -> None:
    emulator = make_emulator(bytes([0x32, 0x00, 0x40, 0x3A, 0x01, 0x40]))  # STA 4000; LDA 4001
    emulator.registers.a = 0x12
    emulator.write_memory(0x4001, 0x34)

    assert emulator.step() == 13
    assert emulator.read_memory(0x4000) == 0x12
    assert emulator.step() == 13
    assert emulator.registers.a == 0x34


def test_shld_lhld() -> None:
    emulator = make_emulator(bytes([0x22, 0x00, 0x50, 0x2A, 0x10, 0x50]))  # SHLD 5000; LHLD 5010
    emulator.registers.hl = 0xAE29
    emulator.memory.write16(0x5010, 0x1234)

    assert emulator.step() == 16
    assert emulator.read_memory_block(0x5000, 2) == bytes([0x29, 0xAE])
    assert emulator.step() == 16
    assert emulator.registers.hl == 0x1234


def test_xchg_swaps_de_and_hl() -> None:
    emulator = make_emulator(bytes([0xEB]))  # XCHG
    emulator.registers.de = 0x1111
    emulator.registers.hl = 0x2222

    assert emulator.step() == 4
    assert emulator.registers.de == 0x2222
    assert emulator.registers.hl == 0x1111


def test_push_decrements_then_stores() -> None:
    emulator = make_emulator(bytes([0xC5, 0xD1]))  # PUSH B; POP D
    emulator.registers.sp = 0x3000
    emulator.registers.bc = 0x8F9D

    assert emulator.step() == 11
    assert emulator.sp == 0x2FFE
    assert emulator.read_memory(0x2FFF) == 0x8F
    assert emulator.read_memory(0x2FFE) == 0x9D

    assert emulator.step() == 10
    assert emulator.sp == 0x3000
    assert emulator.registers.de == 0x8F9D


def test_push_pop_psw_round_trips_flags() -> None:
    emulator = make_emulator(bytes([0xF5, 0xF1]))  # PUSH PSW; POP PSW
    regs = emulator.registers
    regs.sp = 0x4000
    regs.a = 0x47
    flags = regs.flags
    flags.sign = flags.zero = flags.aux_carry = flags.parity = flags.carry = True

    emulator.step()

    stored = emulator.read_memory(0x3FFE)
    assert emulator.read_memory(0x3FFF) == 0x47
    assert stored == 0xD7
    assert stored & 0x02
    assert not stored & 0x28

    regs.a = 0x00
    flags.sign = flags.zero = flags.aux_carry = flags.parity = flags.carry = False

    emulator.step()

    assert regs.a == 0x47
    assert flags.sign and flags.zero and flags.aux_carry and flags.parity and flags.carry
    assert emulator.sp == 0x4000


def test_pop_psw_ignores_fixed_bits() -> None:
    emulator = make_emulator(bytes([0xF1]))  # POP PSW
    emulator.registers.sp = 0x2000
    emulator.memory.write16(0x2000, 0x0028)

    emulator.step()

    assert emulator.registers.flags.pack() == 0x02
    assert emulator.registers.a == 0x00


def test_xthl_exchanges_with_stack_top() -> None:
    emulator = make_emulator(bytes([0xE3]))  # XTHL
    emulator.registers.sp = 0x3000
    emulator.registers.hl = 0xABCD
    emulator.memory.write16(0x3000, 0x1234)

    assert emulator.step() == 18
    assert emulator.registers.hl == 0x1234
    assert emulator.memory.read16(0x3000) == 0xABCD
    assert emulator.sp == 0x3000


def test_sphl() -> None:
    emulator = make_emulator(bytes([0xF9]))  # SPHL
    emulator.registers.hl = 0x506C

    assert emulator.step() == 5
    assert emulator.sp == 0x506C


def test_in_and_out_use_port_bank() -> None:
    emulator = make_emulator(bytes([0xDB, 0x10, 0xD3, 0x11]))  # IN 10; OUT 11
    written: list[tuple[int, int]] = []
    emulator.set_port_read_handler(0x10, lambda port: 0x3C)
    emulator.set_port_write_handler(0x11, lambda port, value: written.append((port, value)))

    assert emulator.step() == 10
    assert emulator.registers.a == 0x3C
    assert emulator.step() == 10
    assert written == [(0x11, 0x3C)]
    assert emulator.read_port(0x11) == 0x3C


def test_in_without_handler_reads_latched_input() -> None:
    emulator = make_emulator(bytes([0xDB, 0x02]))  # IN 2
    emulator.set_port_input(0x02, 0x81)

    emulator.step()

    assert emulator.registers.a == 0x81
