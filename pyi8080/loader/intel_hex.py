"""Intel HEX loader for 8080 program images."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Tuple

from pyi8080.bus import Memory
from pyi8080.errors import AddressRangeError

from .program import ProgramImage


class HexFormatError(ValueError):
    """Raised when an Intel HEX file violates the record format."""


RECORD_DATA = 0x00
RECORD_EOF = 0x01
RECORD_EXTENDED_SEGMENT = 0x02
RECORD_START_SEGMENT = 0x03
RECORD_EXTENDED_LINEAR = 0x04
RECORD_START_LINEAR = 0x05

MIN_RECORD_BYTES = 5  # length, address (2), type, checksum


def load_intel_hex(stream: TextIO, memory: Memory) -> ProgramImage:
    """Load an Intel HEX image from ``stream`` into ``memory`` and return metadata."""

    loader = _HexLoader(stream, memory)
    return loader.load()


def load_intel_hex_from_path(path: Path, memory: Memory) -> ProgramImage:
    """Load an Intel HEX image from the filesystem."""

    with path.open("r", encoding="ascii") as handle:
        program = load_intel_hex(handle, memory)
    program.name = path.stem
    return program


class _HexLoader:
    def __init__(self, stream: TextIO, memory: Memory) -> None:
        self._stream = stream
        self._memory = memory

    def load(self) -> ProgramImage:
        program = ProgramImage()
        blocks = self._collect(program, self._stream)

        # every record is validated before the first byte is written
        for address, payload in blocks:
            if address + len(payload) > self._memory.size:
                raise AddressRangeError(address + len(payload) - 1, self._memory.size)
        for address, payload in blocks:
            self._memory.load(payload, address)
        for start, end in _merge_ranges(blocks):
            program.add_region(start, end)
        return program

    def _collect(self, program: ProgramImage, lines: Iterable[str]) -> List[Tuple[int, bytes]]:
        blocks: List[Tuple[int, bytes]] = []
        seen_eof = False
        for line_number, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line:
                continue
            if seen_eof:
                raise HexFormatError(f"line {line_number}: data after end-of-file record")
            record_type, address, data = self._parse_record(line, line_number)
            if record_type == RECORD_DATA:
                if data:
                    blocks.append((address, data))
            elif record_type == RECORD_EOF:
                seen_eof = True
            elif record_type in (RECORD_EXTENDED_SEGMENT, RECORD_EXTENDED_LINEAR):
                if len(data) != 2:
                    raise HexFormatError(f"line {line_number}: extended address record needs 2 bytes")
                if data != b"\x00\x00":
                    raise HexFormatError(f"line {line_number}: address beyond 16-bit space")
            elif record_type in (RECORD_START_SEGMENT, RECORD_START_LINEAR):
                if len(data) != 4:
                    raise HexFormatError(f"line {line_number}: start address record needs 4 bytes")
                program.entry = self._start_address(record_type, data, line_number)
            else:
                raise HexFormatError(f"line {line_number}: unknown record type {record_type:#04x}")
        if not seen_eof:
            raise HexFormatError("missing end-of-file record")
        return blocks

    def _parse_record(self, line: str, line_number: int) -> Tuple[int, int, bytes]:
        if not line.startswith(":"):
            raise HexFormatError(f"line {line_number}: record must start with ':'")
        try:
            record = bytes.fromhex(line[1:])
        except ValueError as exc:
            raise HexFormatError(f"line {line_number}: invalid hex digits") from exc
        if len(record) < MIN_RECORD_BYTES:
            raise HexFormatError(f"line {line_number}: record too short")
        length = record[0]
        if len(record) != length + MIN_RECORD_BYTES:
            raise HexFormatError(f"line {line_number}: record length mismatch")
        if sum(record) & 0xFF:
            raise HexFormatError(f"line {line_number}: checksum mismatch")
        address = (record[1] << 8) | record[2]
        record_type = record[3]
        return record_type, address, bytes(record[4:4 + length])

    def _start_address(self, record_type: int, data: bytes, line_number: int) -> int:
        if record_type == RECORD_START_SEGMENT:
            segment = (data[0] << 8) | data[1]
            offset = (data[2] << 8) | data[3]
            value = (segment << 4) + offset
        else:
            value = int.from_bytes(data, "big")
        if value > 0xFFFF:
            raise HexFormatError(f"line {line_number}: start address beyond 16-bit space")
        return value


def _merge_ranges(blocks: Iterable[Tuple[int, bytes]]) -> List[Tuple[int, int]]:
    ranges = sorted((address, address + len(payload) - 1) for address, payload in blocks)
    merged: List[Tuple[int, int]] = []
    current: Optional[Tuple[int, int]] = None
    for start, end in ranges:
        if current is not None and start <= current[1] + 1:
            current = (current[0], max(current[1], end))
            continue
        if current is not None:
            merged.append(current)
        current = (start, end)
    if current is not None:
        merged.append(current)
    return merged
