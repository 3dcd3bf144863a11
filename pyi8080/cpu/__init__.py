"""CPU package for the 8080 emulator."""

from .core import INTERRUPT_CYCLES, Intel8080
from .interrupts import DEFAULT_VECTOR, InterruptController
from .opcodes import OPCODE_TABLE, Instruction, OperandKind, decode
from .registers import ConditionCodes, RegisterFile
from . import opcodes

__all__ = [
    "Intel8080",
    "INTERRUPT_CYCLES",
    "InterruptController",
    "DEFAULT_VECTOR",
    "RegisterFile",
    "ConditionCodes",
    "Instruction",
    "OperandKind",
    "OPCODE_TABLE",
    "decode",
    "opcodes",
]
