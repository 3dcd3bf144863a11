"""Lightweight execution trace buffer for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .debug import debug_log


@dataclass
class TraceEntry:
    pc: int
    opcode: int | None
    mnemonic: str
    cycles: int
    a: int
    bc: int
    de: int
    hl: int
    sp: int
    psw: int
    halted: bool
    interrupt_enable: bool
    note: str = ""
    text: str = ""


class TraceRecorder:
    """Ring buffer that stores recent register-file snapshots."""

    def __init__(self, capacity: int = 256) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[TraceEntry | None] = [None] * capacity
        self._index = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._size

    def record_step(
        self,
        registers,
        opcode: int | None,
        cycles: int,
        *,
        pc: int | None = None,
        mnemonic: str = "",
        note: str = "",
        text: str = "",
    ) -> None:
        """Append a snapshot of ``registers``.

        ``pc`` overrides the program counter stored in the entry, which lets the
        caller record the address the instruction was fetched from rather than
        the address it left behind.

        ``text`` is the disassembled instruction, operand included; the bare
        mnemonic is shown when it is empty.
        """

        flags = registers.flags
        entry = TraceEntry(
            pc=(registers.pc if pc is None else pc) & 0xFFFF,
            opcode=None if opcode is None else opcode & 0xFF,
            mnemonic=mnemonic,
            cycles=cycles,
            a=registers.a & 0xFF,
            bc=registers.bc & 0xFFFF,
            de=registers.de & 0xFFFF,
            hl=registers.hl & 0xFFFF,
            sp=registers.sp & 0xFFFF,
            psw=flags.pack(),
            halted=flags.halted,
            interrupt_enable=flags.interrupt_enable,
            note=note,
            text=text,
        )
        self._append(entry)

    def entries(self, limit: int | None = None) -> Iterable[TraceEntry]:
        count = self._size if limit is None else min(self._size, max(limit, 0))
        for offset in range(count):
            index = (self._index - count + offset) % self._capacity
            entry = self._entries[index]
            if entry is not None:
                yield entry

    def last_entry(self) -> TraceEntry | None:
        if self._size == 0:
            return None
        index = (self._index - 1) % self._capacity
        return self._entries[index]

    def clear(self) -> None:
        self._entries = [None] * self._capacity
        self._index = 0
        self._size = 0

    def format_entries(self, limit: int | None = None) -> Sequence[str]:
        lines: list[str] = []
        for entry in self.entries(limit):
            opcode = "--" if entry.opcode is None else f"{entry.opcode:02X}"
            mnemonic = entry.text or entry.mnemonic or "?"
            markers: list[str] = []
            if entry.interrupt_enable:
                markers.append("IE")
            if entry.halted:
                markers.append("HALT")
            if entry.note:
                markers.append(entry.note)
            marker_repr = ",".join(markers) if markers else "-"
            line = (
                f"pc={entry.pc:04X} opcode={opcode} {mnemonic:<12} cycles={entry.cycles:02d} "
                f"A={entry.a:02X} BC={entry.bc:04X} DE={entry.de:04X} HL={entry.hl:04X} "
                f"SP={entry.sp:04X} PSW={entry.psw:02X} flags={marker_repr}"
            )
            lines.append(line)
        return lines

    def dump(self, category: str, limit: int | None = None) -> None:
        for line in self.format_entries(limit):
            debug_log(category, line)

    def _append(self, entry: TraceEntry) -> None:
        self._entries[self._index] = entry
        self._index = (self._index + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1
