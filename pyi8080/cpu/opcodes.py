"""Opcode metadata for the Intel 8080 CPU.

The table covers all 256 opcode values. The twelve slots Intel left
undocumented (``08 10 18 20 28 30 38 CB D9 DD ED FD``) decode to a one-byte,
four-cycle NOP marked ``documented=False``; silicon aliases for those slots
are not emulated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final, Iterable, Iterator, List, Sequence


class OperandKind(Enum):
    """How an instruction sources its operand."""

    NONE = auto()
    IMMEDIATE8 = auto()
    IMMEDIATE16 = auto()
    REGISTER_PAIR = auto()
    IMPLICIT_REGISTER = auto()


_OPERAND_BYTES: Final[dict[OperandKind, int]] = {
    OperandKind.NONE: 0,
    OperandKind.IMMEDIATE8: 1,
    OperandKind.IMMEDIATE16: 2,
    OperandKind.REGISTER_PAIR: 0,
    OperandKind.IMPLICIT_REGISTER: 0,
}


@dataclass(frozen=True)
class Instruction:
    """Metadata describing a single 8080 opcode."""

    opcode: int
    mnemonic: str
    operand_kind: OperandKind
    cycles: int
    handler: str
    alt_cycles: int | None = None
    dst: str | None = None
    src: str | None = None
    pair: str | None = None
    condition: str | None = None
    vector: int | None = None
    documented: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.opcode <= 0xFF:
            raise ValueError(f"opcode out of range: {self.opcode}")
        if self.cycles <= 0:
            raise ValueError("cycles must be positive")

    @property
    def length(self) -> int:
        return 1 + _OPERAND_BYTES[self.operand_kind]

    def format(self, operand: int | None = None) -> str:
        """Render assembler syntax, e.g. ``MOV B,M`` or ``LXI H,1234H``."""

        parts: list[str] = []
        if self.pair is not None:
            parts.append(_PAIR_SYNTAX[self.pair])
        if self.dst is not None:
            parts.append(self.dst.upper())
        if self.src is not None:
            parts.append(self.src.upper())
        if self.vector is not None:
            parts.append(str(self.vector >> 3))
        if self.operand_kind is OperandKind.IMMEDIATE8:
            parts.append("d8" if operand is None else f"{operand & 0xFF:02X}H")
        elif self.operand_kind is OperandKind.IMMEDIATE16:
            parts.append("d16" if operand is None else f"{operand & 0xFFFF:04X}H")
        if not parts:
            return self.mnemonic
        return f"{self.mnemonic} {','.join(parts)}"


class OpcodeTable:
    """Mutable builder for the 256-entry instruction table."""

    _TABLE_SIZE: Final[int] = 0x100

    def __init__(self) -> None:
        self._table: List[Instruction | None] = [None] * self._TABLE_SIZE

    def register(self, instruction: Instruction) -> None:
        opcode = instruction.opcode
        if self._table[opcode] is not None:
            existing = self._table[opcode]
            raise ValueError(
                f"opcode {opcode:#04x} already registered as {existing.mnemonic}")
        self._table[opcode] = instruction

    def register_all(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            self.register(instruction)

    def fill_unassigned(self) -> None:
        for opcode, entry in enumerate(self._table):
            if entry is None:
                self._table[opcode] = Instruction(
                    opcode, "NOP", OperandKind.NONE, 4, "op_nop", documented=False)

    def freeze(self) -> Sequence[Instruction]:
        if any(entry is None for entry in self._table):
            raise ValueError("instruction table has unassigned opcodes")
        return tuple(self._table)  # type: ignore[arg-type]


# register field encoding used by MOV/MVI/INR/DCR and the ALU group
REGISTERS: Final[tuple[str, ...]] = ("b", "c", "d", "e", "h", "l", "m", "a")
# register pair encoding used by LXI/INX/DCX/DAD; PUSH/POP swap sp for psw
PAIRS: Final[tuple[str, ...]] = ("bc", "de", "hl", "sp")
STACK_PAIRS: Final[tuple[str, ...]] = ("bc", "de", "hl", "psw")
CONDITIONS: Final[tuple[str, ...]] = ("nz", "z", "nc", "c", "po", "pe", "p", "m")

_PAIR_SYNTAX: Final[dict[str, str]] = {"bc": "B", "de": "D", "hl": "H", "sp": "SP", "psw": "PSW"}

_ALU_OPS: Final[tuple[tuple[str, str, str], ...]] = (
    # register form, immediate form, handler
    ("ADD", "ADI", "op_add"),
    ("ADC", "ACI", "op_adc"),
    ("SUB", "SUI", "op_sub"),
    ("SBB", "SBI", "op_sbb"),
    ("ANA", "ANI", "op_ana"),
    ("XRA", "XRI", "op_xra"),
    ("ORA", "ORI", "op_ora"),
    ("CMP", "CPI", "op_cmp"),
)


def _data_transfer() -> Iterator[Instruction]:
    for dst_index, dst in enumerate(REGISTERS):
        for src_index, src in enumerate(REGISTERS):
            opcode = 0x40 | (dst_index << 3) | src_index
            if opcode == 0x76:
                continue  # MOV M,M is HLT
            cycles = 7 if "m" in (dst, src) else 5
            yield Instruction(opcode, "MOV", OperandKind.IMPLICIT_REGISTER, cycles, "op_mov", dst=dst, src=src)
    for index, reg in enumerate(REGISTERS):
        base = index << 3
        memory = reg == "m"
        yield Instruction(0x06 | base, "MVI", OperandKind.IMMEDIATE8, 10 if memory else 7, "op_mvi", dst=reg)
        yield Instruction(0x04 | base, "INR", OperandKind.IMPLICIT_REGISTER, 10 if memory else 5, "op_inr", dst=reg)
        yield Instruction(0x05 | base, "DCR", OperandKind.IMPLICIT_REGISTER, 10 if memory else 5, "op_dcr", dst=reg)
    for index, pair in enumerate(PAIRS):
        base = index << 4
        yield Instruction(0x01 | base, "LXI", OperandKind.IMMEDIATE16, 10, "op_lxi", pair=pair)
        yield Instruction(0x03 | base, "INX", OperandKind.REGISTER_PAIR, 5, "op_inx", pair=pair)
        yield Instruction(0x0B | base, "DCX", OperandKind.REGISTER_PAIR, 5, "op_dcx", pair=pair)
        yield Instruction(0x09 | base, "DAD", OperandKind.REGISTER_PAIR, 10, "op_dad", pair=pair)
    for index, pair in enumerate(("bc", "de")):
        base = index << 4
        yield Instruction(0x02 | base, "STAX", OperandKind.REGISTER_PAIR, 7, "op_stax", pair=pair)
        yield Instruction(0x0A | base, "LDAX", OperandKind.REGISTER_PAIR, 7, "op_ldax", pair=pair)
    yield Instruction(0x22, "SHLD", OperandKind.IMMEDIATE16, 16, "op_shld")
    yield Instruction(0x2A, "LHLD", OperandKind.IMMEDIATE16, 16, "op_lhld")
    yield Instruction(0x32, "STA", OperandKind.IMMEDIATE16, 13, "op_sta")
    yield Instruction(0x3A, "LDA", OperandKind.IMMEDIATE16, 13, "op_lda")
    yield Instruction(0xEB, "XCHG", OperandKind.NONE, 4, "op_xchg")


def _arithmetic_logic() -> Iterator[Instruction]:
    for op_index, (mnemonic, immediate, handler) in enumerate(_ALU_OPS):
        for src_index, src in enumerate(REGISTERS):
            opcode = 0x80 | (op_index << 3) | src_index
            cycles = 7 if src == "m" else 4
            yield Instruction(opcode, mnemonic, OperandKind.IMPLICIT_REGISTER, cycles, handler, src=src)
        yield Instruction(0xC6 | (op_index << 3), immediate, OperandKind.IMMEDIATE8, 7, handler)
    yield Instruction(0x07, "RLC", OperandKind.NONE, 4, "op_rlc")
    yield Instruction(0x0F, "RRC", OperandKind.NONE, 4, "op_rrc")
    yield Instruction(0x17, "RAL", OperandKind.NONE, 4, "op_ral")
    yield Instruction(0x1F, "RAR", OperandKind.NONE, 4, "op_rar")
    yield Instruction(0x27, "DAA", OperandKind.NONE, 4, "op_daa")
    yield Instruction(0x2F, "CMA", OperandKind.NONE, 4, "op_cma")
    yield Instruction(0x37, "STC", OperandKind.NONE, 4, "op_stc")
    yield Instruction(0x3F, "CMC", OperandKind.NONE, 4, "op_cmc")


def _control() -> Iterator[Instruction]:
    yield Instruction(0xC3, "JMP", OperandKind.IMMEDIATE16, 10, "op_jmp")
    yield Instruction(0xCD, "CALL", OperandKind.IMMEDIATE16, 17, "op_call")
    yield Instruction(0xC9, "RET", OperandKind.NONE, 10, "op_ret")
    yield Instruction(0xE9, "PCHL", OperandKind.NONE, 5, "op_pchl")
    for index, condition in enumerate(CONDITIONS):
        base = index << 3
        suffix = condition.upper()
        yield Instruction(0xC2 | base, f"J{suffix}", OperandKind.IMMEDIATE16, 10, "op_jmp_conditional",
                          condition=condition)
        yield Instruction(0xC4 | base, f"C{suffix}", OperandKind.IMMEDIATE16, 11, "op_call_conditional",
                          alt_cycles=17, condition=condition)
        yield Instruction(0xC0 | base, f"R{suffix}", OperandKind.NONE, 5, "op_ret_conditional",
                          alt_cycles=11, condition=condition)
        yield Instruction(0xC7 | base, "RST", OperandKind.NONE, 11, "op_rst", vector=base)


def _stack_io_machine() -> Iterator[Instruction]:
    for index, pair in enumerate(STACK_PAIRS):
        base = index << 4
        yield Instruction(0xC5 | base, "PUSH", OperandKind.REGISTER_PAIR, 11, "op_push", pair=pair)
        yield Instruction(0xC1 | base, "POP", OperandKind.REGISTER_PAIR, 10, "op_pop", pair=pair)
    yield Instruction(0xE3, "XTHL", OperandKind.NONE, 18, "op_xthl")
    yield Instruction(0xF9, "SPHL", OperandKind.NONE, 5, "op_sphl")
    yield Instruction(0xD3, "OUT", OperandKind.IMMEDIATE8, 10, "op_out")
    yield Instruction(0xDB, "IN", OperandKind.IMMEDIATE8, 10, "op_in")
    yield Instruction(0xF3, "DI", OperandKind.NONE, 4, "op_di")
    yield Instruction(0xFB, "EI", OperandKind.NONE, 4, "op_ei")
    yield Instruction(0x00, "NOP", OperandKind.NONE, 4, "op_nop")
    yield Instruction(0x76, "HLT", OperandKind.NONE, 7, "op_hlt")


def default_instructions() -> Iterator[Instruction]:
    """Yield every documented 8080 instruction."""

    yield from _data_transfer()
    yield from _arithmetic_logic()
    yield from _control()
    yield from _stack_io_machine()


def build_instruction_table(instructions: Iterable[Instruction]) -> Sequence[Instruction]:
    """Build a 256-entry instruction lookup table, NOP-filling unassigned slots."""

    table = OpcodeTable()
    table.register_all(instructions)
    table.fill_unassigned()
    return table.freeze()


OPCODE_TABLE: Sequence[Instruction] = build_instruction_table(default_instructions())

UNDOCUMENTED_OPCODES: Final[frozenset[int]] = frozenset(
    entry.opcode for entry in OPCODE_TABLE if not entry.documented)


def decode(opcode: int, table: Sequence[Instruction] = OPCODE_TABLE) -> Instruction:
    """Return the descriptor for ``opcode``; pure table lookup."""

    if not 0 <= opcode <= 0xFF:
        raise ValueError(f"opcode out of range: {opcode}")
    return table[opcode]
