"""Intel 8080 execution engine."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from pyi8080.bus import IOPortBank, Memory
from pyi8080.errors import InvalidStateError
from pyi8080.utils import debug_enabled, debug_log

from .interrupts import InterruptController
from .opcodes import Instruction, OperandKind, OPCODE_TABLE
from .registers import RegisterFile

INTERRUPT_CYCLES = 11  # the acknowledge cycle executes an RST-style push and jump


@dataclass
class Intel8080:
    """Fetch-decode-execute loop over a register file and a borrowed bus.

    The engine owns its registers and interrupt controller. Memory and ports
    belong to the caller and are only reachable inside :meth:`bind`; stepping
    an unbound engine raises :class:`InvalidStateError`.
    """

    instruction_table: Sequence[Instruction] = field(default=OPCODE_TABLE)
    registers: RegisterFile = field(default_factory=RegisterFile)
    interrupts: InterruptController = field(default_factory=InterruptController)
    cycle_count: int = 0
    last_instruction: Instruction | None = field(default=None, init=False)
    last_pc: int = field(default=0, init=False)
    last_operand: int | None = field(default=None, init=False)

    _memory: Memory | None = field(default=None, init=False, repr=False)
    _ports: IOPortBank | None = field(default=None, init=False, repr=False)
    _ei_delay: bool = field(default=False, init=False, repr=False)
    _journal: list[tuple[int, int]] | None = field(default=None, init=False, repr=False)

    def reset(self) -> None:
        """Return registers, flags and interrupt state to power-on values."""

        self.registers = RegisterFile()
        self.interrupts.clear()
        self.cycle_count = 0
        self.last_instruction = None
        self.last_pc = 0
        self.last_operand = None
        self._ei_delay = False

    @contextmanager
    def bind(self, memory: Memory, ports: IOPortBank) -> Iterator["Intel8080"]:
        """Lend ``memory`` and ``ports`` to the engine for the duration of a run."""

        if self._memory is not None:
            raise InvalidStateError("engine is already bound to a bus")
        self._memory = memory
        self._ports = ports
        try:
            yield self
        finally:
            self._memory = None
            self._ports = None

    @property
    def bound(self) -> bool:
        return self._memory is not None

    @property
    def halted(self) -> bool:
        return self.registers.flags.halted

    @property
    def interrupt_ready(self) -> bool:
        """True when a pending interrupt would be accepted by the next step."""

        return (
            self.interrupts.pending
            and self.registers.flags.interrupt_enable
            and not self._ei_delay
        )

    def request_interrupt(self) -> None:
        """Schedule an interrupt to be serviced at the start of a later step."""

        if debug_enabled("irq"):
            debug_log("irq", "request pending=%s ie=%s", self.interrupts.pending,
                      self.registers.flags.interrupt_enable)
        self.interrupts.request()

    def step(self) -> int:
        """Execute a single instruction (or accept an interrupt) and return the cycle count.

        Any exception leaves registers, flags, interrupt state and memory exactly
        as they were before the call.
        """

        if self._memory is None or self._ports is None:
            raise InvalidStateError("engine stepped without a bound memory and port bank")

        snapshot = self.registers.clone()
        pending = self.interrupts.pending
        ei_delay = self._ei_delay
        last = (self.last_pc, self.last_instruction, self.last_operand)
        self._journal = []
        try:
            cycles = self._step()
        except Exception:
            self._rollback(snapshot, pending, ei_delay)
            self.last_pc, self.last_instruction, self.last_operand = last
            raise
        finally:
            self._journal = None

        self.cycle_count += cycles
        return cycles

    def _step(self) -> int:
        regs = self.registers
        if self.interrupt_ready:
            return self._accept_interrupt()

        if regs.flags.halted:
            return 0

        pc = regs.pc
        opcode = self._read_byte(pc)
        instruction = self.instruction_table[opcode]
        operand = self._fetch_operand(instruction.operand_kind, pc)
        regs.pc = pc + instruction.length
        self.last_pc = pc
        self.last_instruction = instruction
        self.last_operand = operand

        if debug_enabled("cpu"):
            debug_log("cpu", "pc=%04x opcode=%02x %s", pc, opcode, instruction.format(operand))

        # EI takes effect after the instruction that follows it
        self._ei_delay = False
        handler = getattr(self, instruction.handler)
        extra_cycles = handler(instruction, operand) or 0
        return instruction.cycles + extra_cycles

    def _accept_interrupt(self) -> int:
        regs = self.registers
        vector = self.interrupts.accept()
        self._push(regs.pc)
        if debug_enabled("irq"):
            debug_log("irq", "accept pc=%04x vector=%04x halted=%s", regs.pc, vector, regs.flags.halted)
        regs.flags.interrupt_enable = False
        regs.flags.halted = False
        self.last_pc = regs.pc
        self.last_instruction = None
        self.last_operand = None
        regs.pc = vector
        return INTERRUPT_CYCLES

    def _rollback(self, snapshot: RegisterFile, pending: bool, ei_delay: bool) -> None:
        journal = self._journal or []
        memory = self._memory
        if memory is not None:
            for address, value in reversed(journal):
                memory.write8(address, value)
        self.registers.restore(snapshot)
        self.interrupts.pending = pending
        self._ei_delay = ei_delay
        if debug_enabled("cpu"):
            debug_log("cpu", "rolled back step at pc=%04x (%d bytes)", snapshot.pc, len(journal))

    # ------------------------------------------------------------------
    # Data transfer

    def op_nop(self, _: Instruction, __: int) -> int:
        """No operation."""

        return 0

    def op_mov(self, instruction: Instruction, _: int) -> int:
        self._set_register(instruction.dst, self._get_register(instruction.src))
        return 0

    def op_mvi(self, instruction: Instruction, operand: int) -> int:
        self._set_register(instruction.dst, operand)
        return 0

    def op_lxi(self, instruction: Instruction, operand: int) -> int:
        self.registers.set(instruction.pair, operand)
        return 0

    def op_stax(self, instruction: Instruction, _: int) -> int:
        self._write_byte(self.registers.get(instruction.pair), self.registers.a)
        return 0

    def op_ldax(self, instruction: Instruction, _: int) -> int:
        self.registers.a = self._read_byte(self.registers.get(instruction.pair))
        return 0

    def op_sta(self, _: Instruction, address: int) -> int:
        self._write_byte(address, self.registers.a)
        return 0

    def op_lda(self, _: Instruction, address: int) -> int:
        self.registers.a = self._read_byte(address)
        return 0

    def op_shld(self, _: Instruction, address: int) -> int:
        self._write_word(address, self.registers.hl)
        return 0

    def op_lhld(self, _: Instruction, address: int) -> int:
        self.registers.hl = self._read_word(address)
        return 0

    def op_xchg(self, _: Instruction, __: int) -> int:
        regs = self.registers
        regs.hl, regs.de = regs.de, regs.hl
        return 0

    # ------------------------------------------------------------------
    # Increment / decrement

    def op_inr(self, instruction: Instruction, _: int) -> int:
        flags = self.registers.flags
        result = (self._get_register(instruction.dst) + 1) & 0xFF
        flags.set_zero_sign_parity(result)
        flags.set_aux_carry((result & 0x0F) == 0x00)
        self._set_register(instruction.dst, result)
        return 0

    def op_dcr(self, instruction: Instruction, _: int) -> int:
        flags = self.registers.flags
        result = (self._get_register(instruction.dst) - 1) & 0xFF
        flags.set_zero_sign_parity(result)
        flags.set_aux_carry((result & 0x0F) != 0x0F)
        self._set_register(instruction.dst, result)
        return 0

    def op_inx(self, instruction: Instruction, _: int) -> int:
        self.registers.set(instruction.pair, self.registers.get(instruction.pair) + 1)
        return 0

    def op_dcx(self, instruction: Instruction, _: int) -> int:
        self.registers.set(instruction.pair, self.registers.get(instruction.pair) - 1)
        return 0

    def op_dad(self, instruction: Instruction, _: int) -> int:
        regs = self.registers
        total = regs.hl + regs.get(instruction.pair)
        regs.flags.set_carry(total > 0xFFFF)
        regs.hl = total
        return 0

    # ------------------------------------------------------------------
    # Arithmetic and logic

    def op_add(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._add8(regs.a, self._alu_operand(instruction, operand), carry_in=False)
        return 0

    def op_adc(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._add8(regs.a, self._alu_operand(instruction, operand), carry_in=regs.flags.carry)
        return 0

    def op_sub(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._sub8(regs.a, self._alu_operand(instruction, operand), borrow_in=False)
        return 0

    def op_sbb(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._sub8(regs.a, self._alu_operand(instruction, operand), borrow_in=regs.flags.carry)
        return 0

    def op_ana(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._logic(regs.a & self._alu_operand(instruction, operand))
        return 0

    def op_xra(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._logic(regs.a ^ self._alu_operand(instruction, operand))
        return 0

    def op_ora(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        regs.a = self._logic(regs.a | self._alu_operand(instruction, operand))
        return 0

    def op_cmp(self, instruction: Instruction, operand: int) -> int:
        regs = self.registers
        self._sub8(regs.a, self._alu_operand(instruction, operand), borrow_in=False)
        return 0

    def op_rlc(self, _: Instruction, __: int) -> int:
        regs = self.registers
        high = regs.a >> 7
        regs.a = (regs.a << 1) | high
        regs.flags.set_carry(high == 1)
        return 0

    def op_rrc(self, _: Instruction, __: int) -> int:
        regs = self.registers
        low = regs.a & 0x01
        regs.a = (regs.a >> 1) | (low << 7)
        regs.flags.set_carry(low == 1)
        return 0

    def op_ral(self, _: Instruction, __: int) -> int:
        regs = self.registers
        high = regs.a >> 7
        regs.a = (regs.a << 1) | int(regs.flags.carry)
        regs.flags.set_carry(high == 1)
        return 0

    def op_rar(self, _: Instruction, __: int) -> int:
        regs = self.registers
        low = regs.a & 0x01
        regs.a = (regs.a >> 1) | (int(regs.flags.carry) << 7)
        regs.flags.set_carry(low == 1)
        return 0

    def op_daa(self, _: Instruction, __: int) -> int:
        regs = self.registers
        flags = regs.flags
        value = regs.a
        correction = 0
        carry = flags.carry
        low = value & 0x0F
        high = value >> 4
        if flags.aux_carry or low > 9:
            correction |= 0x06
        if carry or high > 9 or (high >= 9 and low > 9):
            correction |= 0x60
            carry = True
        result = (value + correction) & 0xFF
        flags.set_aux_carry((low + (correction & 0x0F)) > 0x0F)
        flags.set_zero_sign_parity(result)
        flags.set_carry(carry)
        regs.a = result
        return 0

    def op_cma(self, _: Instruction, __: int) -> int:
        self.registers.a = ~self.registers.a
        return 0

    def op_stc(self, _: Instruction, __: int) -> int:
        self.registers.flags.set_carry(True)
        return 0

    def op_cmc(self, _: Instruction, __: int) -> int:
        flags = self.registers.flags
        flags.set_carry(not flags.carry)
        return 0

    # ------------------------------------------------------------------
    # Control transfer

    def op_jmp(self, _: Instruction, address: int) -> int:
        self.registers.pc = address
        return 0

    def op_jmp_conditional(self, instruction: Instruction, address: int) -> int:
        if self._condition(instruction.condition):
            self.registers.pc = address
        return 0

    def op_call(self, _: Instruction, address: int) -> int:
        self._push(self.registers.pc)
        self.registers.pc = address
        return 0

    def op_call_conditional(self, instruction: Instruction, address: int) -> int:
        if not self._condition(instruction.condition):
            return 0
        self._push(self.registers.pc)
        self.registers.pc = address
        return self._taken_penalty(instruction)

    def op_ret(self, _: Instruction, __: int) -> int:
        self.registers.pc = self._pop()
        return 0

    def op_ret_conditional(self, instruction: Instruction, _: int) -> int:
        if not self._condition(instruction.condition):
            return 0
        self.registers.pc = self._pop()
        return self._taken_penalty(instruction)

    def op_rst(self, instruction: Instruction, _: int) -> int:
        self._push(self.registers.pc)
        self.registers.pc = instruction.vector
        return 0

    def op_pchl(self, _: Instruction, __: int) -> int:
        self.registers.pc = self.registers.hl
        return 0

    # ------------------------------------------------------------------
    # Stack, I/O and machine control

    def op_push(self, instruction: Instruction, _: int) -> int:
        self._push(self.registers.get(instruction.pair))
        return 0

    def op_pop(self, instruction: Instruction, _: int) -> int:
        self.registers.set(instruction.pair, self._pop())
        return 0

    def op_xthl(self, _: Instruction, __: int) -> int:
        regs = self.registers
        stacked = self._read_word(regs.sp)
        self._write_word(regs.sp, regs.hl)
        regs.hl = stacked
        return 0

    def op_sphl(self, _: Instruction, __: int) -> int:
        self.registers.sp = self.registers.hl
        return 0

    def op_out(self, _: Instruction, port: int) -> int:
        self._require_ports().write(port, self.registers.a)
        return 0

    def op_in(self, _: Instruction, port: int) -> int:
        self.registers.a = self._require_ports().read(port)
        return 0

    def op_di(self, _: Instruction, __: int) -> int:
        self.registers.flags.interrupt_enable = False
        self._ei_delay = False
        self.interrupts.clear()
        return 0

    def op_ei(self, _: Instruction, __: int) -> int:
        self.registers.flags.interrupt_enable = True
        self._ei_delay = True
        return 0

    def op_hlt(self, _: Instruction, __: int) -> int:
        self.registers.flags.halted = True
        if debug_enabled("cpu"):
            debug_log("cpu", "halt pc=%04x", self.registers.pc)
        return 0

    # ------------------------------------------------------------------
    # Fetch helpers

    def _fetch_operand(self, kind: OperandKind, pc: int) -> int:
        if kind is OperandKind.IMMEDIATE8:
            return self._read_byte((pc + 1) & 0xFFFF)
        if kind is OperandKind.IMMEDIATE16:
            return self._read_word((pc + 1) & 0xFFFF)
        return 0

    # ------------------------------------------------------------------
    # Memory helpers

    def _require_memory(self) -> Memory:
        if self._memory is None:
            raise InvalidStateError("no memory bound to the engine")
        return self._memory

    def _require_ports(self) -> IOPortBank:
        if self._ports is None:
            raise InvalidStateError("no port bank bound to the engine")
        return self._ports

    def _read_byte(self, address: int) -> int:
        return self._require_memory().read8(address & 0xFFFF)

    def _read_word(self, address: int) -> int:
        low = self._read_byte(address)
        high = self._read_byte((address + 1) & 0xFFFF)
        return (high << 8) | low

    def _write_byte(self, address: int, value: int) -> None:
        memory = self._require_memory()
        address &= 0xFFFF
        if self._journal is not None:
            self._journal.append((address, memory.read8(address)))
        memory.write8(address, value & 0xFF)

    def _write_word(self, address: int, value: int) -> None:
        self._write_byte(address, value & 0xFF)
        self._write_byte((address + 1) & 0xFFFF, value >> 8)

    def _push(self, value: int) -> None:
        regs = self.registers
        regs.sp -= 1
        self._write_byte(regs.sp, (value >> 8) & 0xFF)
        regs.sp -= 1
        self._write_byte(regs.sp, value & 0xFF)

    def _pop(self) -> int:
        regs = self.registers
        low = self._read_byte(regs.sp)
        regs.sp += 1
        high = self._read_byte(regs.sp)
        regs.sp += 1
        return (high << 8) | low

    # ------------------------------------------------------------------
    # Register helpers

    def _get_register(self, name: str | None) -> int:
        if name == "m":
            return self._read_byte(self.registers.hl)
        return self.registers.get(name)

    def _set_register(self, name: str | None, value: int) -> None:
        if name == "m":
            self._write_byte(self.registers.hl, value)
        else:
            self.registers.set(name, value)

    def _alu_operand(self, instruction: Instruction, operand: int) -> int:
        if instruction.operand_kind is OperandKind.IMMEDIATE8:
            return operand
        return self._get_register(instruction.src)

    # ------------------------------------------------------------------
    # Flag helpers

    def _condition(self, condition: str | None) -> bool:
        flags = self.registers.flags
        if condition == "nz":
            return not flags.zero
        if condition == "z":
            return flags.zero
        if condition == "nc":
            return not flags.carry
        if condition == "c":
            return flags.carry
        if condition == "po":
            return not flags.parity
        if condition == "pe":
            return flags.parity
        if condition == "p":
            return not flags.sign
        if condition == "m":
            return flags.sign
        raise ValueError(f"unknown condition {condition!r}")

    @staticmethod
    def _taken_penalty(instruction: Instruction) -> int:
        if instruction.alt_cycles is None:
            return 0
        return instruction.alt_cycles - instruction.cycles

    def _add8(self, x: int, y: int, *, carry_in: bool) -> int:
        carry = 1 if carry_in else 0
        total = x + y + carry
        result = total & 0xFF
        flags = self.registers.flags
        flags.set_aux_carry((x & 0x0F) + (y & 0x0F) + carry > 0x0F)
        flags.set_zero_sign_parity(result)
        flags.set_carry(total > 0xFF)
        return result

    def _sub8(self, x: int, y: int, *, borrow_in: bool) -> int:
        borrow = 1 if borrow_in else 0
        total = x - y - borrow
        result = total & 0xFF
        flags = self.registers.flags
        # the 8080 subtracts by adding the complement, so AC is the adder's nibble carry
        flags.set_aux_carry((x & 0x0F) + (~y & 0x0F) + (1 - borrow) > 0x0F)
        flags.set_zero_sign_parity(result)
        flags.set_carry(total < 0)
        return result

    def _logic(self, result: int) -> int:
        flags = self.registers.flags
        result &= 0xFF
        flags.set_zero_sign_parity(result)
        flags.set_carry(False)
        flags.set_aux_carry(False)
        return result
