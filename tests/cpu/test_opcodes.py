"""Tests for the 8080 opcode table."""

import pytest

from pyi8080.cpu import OPCODE_TABLE, Instruction, OperandKind, decode
from pyi8080.cpu.opcodes import OpcodeTable, UNDOCUMENTED_OPCODES, build_instruction_table


def test_table_has_one_entry_per_opcode() -> None:
    assert len(OPCODE_TABLE) == 0x100
    for opcode, instruction in enumerate(OPCODE_TABLE):
        assert instruction.opcode == opcode


def test_undocumented_slots_decode_to_nop() -> None:
    assert UNDOCUMENTED_OPCODES == {0x08, 0x10, 0x18, 0x20, 0x28, 0x30, 0x38, 0xCB, 0xD9, 0xDD, 0xED, 0xFD}
    for opcode in UNDOCUMENTED_OPCODES:
        instruction = decode(opcode)
        assert instruction.mnemonic == "NOP"
        assert instruction.cycles == 4
        assert instruction.length == 1
        assert not instruction.documented


@pytest.mark.parametrize(
    ("opcode", "mnemonic", "kind", "cycles", "alt_cycles", "length"),
    [
        (0x00, "NOP", OperandKind.NONE, 4, None, 1),
        (0x01, "LXI", OperandKind.IMMEDIATE16, 10, None, 3),
        (0x3E, "MVI", OperandKind.IMMEDIATE8, 7, None, 2),
        (0x36, "MVI", OperandKind.IMMEDIATE8, 10, None, 2),
        (0x41, "MOV", OperandKind.IMPLICIT_REGISTER, 5, None, 1),
        (0x7E, "MOV", OperandKind.IMPLICIT_REGISTER, 7, None, 1),
        (0x34, "INR", OperandKind.IMPLICIT_REGISTER, 10, None, 1),
        (0x03, "INX", OperandKind.REGISTER_PAIR, 5, None, 1),
        (0x80, "ADD", OperandKind.IMPLICIT_REGISTER, 4, None, 1),
        (0x86, "ADD", OperandKind.IMPLICIT_REGISTER, 7, None, 1),
        (0xFE, "CPI", OperandKind.IMMEDIATE8, 7, None, 2),
        (0x22, "SHLD", OperandKind.IMMEDIATE16, 16, None, 3),
        (0xC4, "CNZ", OperandKind.IMMEDIATE16, 11, 17, 3),
        (0xD8, "RC", OperandKind.NONE, 5, 11, 1),
        (0xCD, "CALL", OperandKind.IMMEDIATE16, 17, None, 3),
        (0xFF, "RST", OperandKind.NONE, 11, None, 1),
        (0xF5, "PUSH", OperandKind.REGISTER_PAIR, 11, None, 1),
        (0xE3, "XTHL", OperandKind.NONE, 18, None, 1),
        (0xDB, "IN", OperandKind.IMMEDIATE8, 10, None, 2),
        (0x76, "HLT", OperandKind.NONE, 7, None, 1),
    ],
)
def test_descriptor_metadata(opcode, mnemonic, kind, cycles, alt_cycles, length) -> None:
    instruction = decode(opcode)

    assert instruction.mnemonic == mnemonic
    assert instruction.operand_kind is kind
    assert instruction.cycles == cycles
    assert instruction.alt_cycles == alt_cycles
    assert instruction.length == length


def test_register_and_pair_metadata() -> None:
    assert (decode(0x46).dst, decode(0x46).src) == ("b", "m")
    assert decode(0x31).pair == "sp"
    assert decode(0xF1).pair == "psw"
    assert decode(0xCA).condition == "z"
    assert decode(0xEF).vector == 0x28


def test_format_renders_assembler_syntax() -> None:
    assert decode(0x46).format() == "MOV B,M"
    assert decode(0x21).format(0x1234) == "LXI H,1234H"
    assert decode(0xF5).format() == "PUSH PSW"
    assert decode(0xFE).format(0x0A) == "CPI 0AH"
    assert decode(0xD7).format() == "RST 2"
    assert decode(0xC9).format() == "RET"


def test_decode_rejects_non_byte() -> None:
    with pytest.raises(ValueError):
        decode(0x100)


def test_duplicate_registration_rejected() -> None:
    table = OpcodeTable()
    table.register(Instruction(0x00, "NOP", OperandKind.NONE, 4, "op_nop"))

    with pytest.raises(ValueError):
        table.register(Instruction(0x00, "NOP", OperandKind.NONE, 4, "op_nop"))


def test_freeze_requires_complete_table() -> None:
    table = OpcodeTable()

    with pytest.raises(ValueError):
        table.freeze()

    small = build_instruction_table([Instruction(0x76, "HLT", OperandKind.NONE, 7, "op_hlt")])
    assert len(small) == 0x100
    assert small[0x76].mnemonic == "HLT"
    assert not small[0x00].documented


def test_instruction_validation() -> None:
    with pytest.raises(ValueError):
        Instruction(0x100, "BAD", OperandKind.NONE, 4, "op_nop")
    with pytest.raises(ValueError):
        Instruction(0x00, "BAD", OperandKind.NONE, 0, "op_nop")
