"""Flat 64 KiB memory for the 8080 emulator.

Addresses are never wrapped: anything outside ``0..size-1`` is a caller error
and raises :class:`~pyi8080.errors.AddressRangeError`. 16-bit accessors are
little-endian, matching the 8080 (low byte at ``address``, high byte at
``address + 1``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pyi8080.errors import AddressRangeError, AllocationError, InvalidStateError
from pyi8080.utils import debug_enabled, debug_log

ADDRESS_SPACE = 0x10000


@dataclass
class Memory:
    """Byte-addressable RAM owned by a single emulator instance."""

    size: int = ADDRESS_SPACE
    _data: bytearray | None = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        if not 0 < self.size <= ADDRESS_SPACE:
            raise AllocationError(f"memory size {self.size} out of range (1-{ADDRESS_SPACE})")
        try:
            self._data = bytearray(self.size)
        except MemoryError as exc:
            raise AllocationError(f"unable to allocate {self.size} bytes of memory") from exc

    def _ensure_data(self) -> bytearray:
        if self._data is None:
            raise InvalidStateError("memory has been released")
        return self._data

    def _check(self, address: int, length: int = 1) -> None:
        if address < 0 or address + length > self.size:
            bad = address if address < 0 or address >= self.size else self.size
            raise AddressRangeError(bad, self.size)

    def read8(self, address: int) -> int:
        data = self._ensure_data()
        self._check(address)
        return data[address]

    def write8(self, address: int, value: int) -> None:
        data = self._ensure_data()
        self._check(address)
        if debug_enabled("memory"):
            debug_log("memory", "write8 addr=%04x val=%02x", address, value & 0xFF)
        data[address] = value & 0xFF

    def read16(self, address: int) -> int:
        data = self._ensure_data()
        self._check(address, 2)
        return data[address] | (data[address + 1] << 8)

    def write16(self, address: int, value: int) -> None:
        data = self._ensure_data()
        self._check(address, 2)
        data[address] = value & 0xFF
        data[address + 1] = (value >> 8) & 0xFF

    def load(self, payload: bytes, address: int = 0) -> None:
        """Copy ``payload`` into memory; nothing is written unless all of it fits."""

        data = self._ensure_data()
        if not payload:
            self._check(address, 0)
            return
        self._check(address, len(payload))
        data[address:address + len(payload)] = payload

    def dump(self, start: int, length: int) -> bytes:
        data = self._ensure_data()
        if length < 0:
            raise ValueError("length must not be negative")
        self._check(start, length)
        return bytes(data[start:start + length])

    def clear(self) -> None:
        data = self._ensure_data()
        data[:] = bytes(len(data))

    def release(self) -> None:
        self._data = None

    @property
    def released(self) -> bool:
        return self._data is None
