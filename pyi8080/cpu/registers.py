"""8080 register file and condition codes."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

FLAG_S = 0x80
FLAG_Z = 0x40
FLAG_AC = 0x10
FLAG_P = 0x04
FLAG_ALWAYS_ONE = 0x02
FLAG_CY = 0x01

# bit 1 always reads back as 1; bits 5 and 3 always read back as 0
ARCHITECTURAL_FLAGS = FLAG_S | FLAG_Z | FLAG_AC | FLAG_P | FLAG_CY

_PARITY = tuple(bin(value).count("1") % 2 == 0 for value in range(0x100))


def even_parity(value: int) -> bool:
    return _PARITY[value & 0xFF]


@dataclass
class ConditionCodes:
    """Architectural flags plus the emulator-only halt/interrupt bits."""

    sign: bool = False
    zero: bool = False
    aux_carry: bool = False
    parity: bool = False
    carry: bool = False
    halted: bool = False
    interrupt_enable: bool = False

    def set_zero_sign_parity(self, result: int) -> None:
        result &= 0xFF
        self.zero = result == 0
        self.sign = (result & 0x80) != 0
        self.parity = _PARITY[result]

    def set_carry(self, value: bool) -> None:
        self.carry = bool(value)

    def set_aux_carry(self, value: bool) -> None:
        self.aux_carry = bool(value)

    def pack(self) -> int:
        """Return the PSW low byte as PUSH PSW stores it."""

        value = FLAG_ALWAYS_ONE
        if self.sign:
            value |= FLAG_S
        if self.zero:
            value |= FLAG_Z
        if self.aux_carry:
            value |= FLAG_AC
        if self.parity:
            value |= FLAG_P
        if self.carry:
            value |= FLAG_CY
        return value

    def unpack(self, value: int) -> None:
        """Restore the five architectural flags from a packed byte.

        Bits 5, 3 and 1 are ignored; the halt and interrupt-enable bits are left
        alone.
        """

        self.sign = (value & FLAG_S) != 0
        self.zero = (value & FLAG_Z) != 0
        self.aux_carry = (value & FLAG_AC) != 0
        self.parity = (value & FLAG_P) != 0
        self.carry = (value & FLAG_CY) != 0

    def clone(self) -> "ConditionCodes":
        return ConditionCodes(**{f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class RegisterFile:
    """Snapshot of the 8080 register file.

    ``bc``, ``de`` and ``hl`` are views over the underlying 8-bit registers
    with the first-named register in the high byte. Every setter masks its
    value to the register width.
    """

    a: int = 0x00
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00  # noqa: E741
    sp: int = 0x0000
    pc: int = 0x0000
    flags: ConditionCodes = field(default_factory=ConditionCodes)

    def __setattr__(self, name: str, value) -> None:
        if name in _BYTE_REGISTERS:
            value &= 0xFF
        elif name in ("sp", "pc"):
            value &= 0xFFFF
        object.__setattr__(self, name, value)

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = value >> 8
        self.c = value

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = value >> 8
        self.e = value

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = value >> 8
        self.l = value

    @property
    def psw(self) -> int:
        """Accumulator and packed flags as PUSH PSW sees them."""

        return (self.a << 8) | self.flags.pack()

    @psw.setter
    def psw(self, value: int) -> None:
        self.a = value >> 8
        self.flags.unpack(value & 0xFF)

    def get(self, name: str) -> int:
        """Read an 8-bit register, a pair or SP/PC by lower-case name."""

        if name not in _READABLE:
            raise KeyError(f"unknown register {name!r}")
        return getattr(self, name)

    def set(self, name: str, value: int) -> None:
        if name not in _READABLE:
            raise KeyError(f"unknown register {name!r}")
        setattr(self, name, value)

    def clone(self) -> "RegisterFile":
        return RegisterFile(
            self.a,
            self.b,
            self.c,
            self.d,
            self.e,
            self.h,
            self.l,
            self.sp,
            self.pc,
            self.flags.clone(),
        )

    def restore(self, snapshot: "RegisterFile") -> None:
        """Copy every register and flag from ``snapshot`` into this file."""

        for name in _BYTE_REGISTERS + ("sp", "pc"):
            setattr(self, name, getattr(snapshot, name))
        self.flags = snapshot.flags.clone()


_BYTE_REGISTERS = ("a", "b", "c", "d", "e", "h", "l")
_READABLE = frozenset(_BYTE_REGISTERS + ("bc", "de", "hl", "psw", "sp", "pc"))
