"""256-slot I/O port bank used by the 8080 ``IN``/``OUT`` instructions."""

from __future__ import annotations

from typing import Callable, Optional

from pyi8080.errors import AddressRangeError
from pyi8080.utils import debug_enabled, debug_log

PORT_COUNT = 0x100

PortReadHandler = Callable[[int], int]
PortWriteHandler = Callable[[int, int], None]


class IOPortBank:
    """Port slots with independent read and write semantics.

    A port without a read handler returns its latched input value, which
    defaults to ``0x00``. Every write is latched (so it can be inspected later)
    after the write handler, if any, has accepted it.
    """

    def __init__(self) -> None:
        self._readers: list[Optional[PortReadHandler]] = [None] * PORT_COUNT
        self._writers: list[Optional[PortWriteHandler]] = [None] * PORT_COUNT
        self._inputs = bytearray(PORT_COUNT)
        self._outputs = bytearray(PORT_COUNT)

    def _check(self, port: int) -> None:
        if not 0 <= port < PORT_COUNT:
            raise AddressRangeError(port, PORT_COUNT, what="port")

    def set_read_handler(self, port: int, handler: Optional[PortReadHandler]) -> None:
        self._check(port)
        self._readers[port] = handler

    def set_write_handler(self, port: int, handler: Optional[PortWriteHandler]) -> None:
        self._check(port)
        self._writers[port] = handler

    def set_input(self, port: int, value: int) -> None:
        self._check(port)
        self._inputs[port] = value & 0xFF

    def read(self, port: int) -> int:
        self._check(port)
        handler = self._readers[port]
        value = self._inputs[port] if handler is None else handler(port) & 0xFF
        if debug_enabled("io"):
            debug_log("io", "in port=%02x val=%02x", port, value)
        return value

    def write(self, port: int, value: int) -> None:
        self._check(port)
        value &= 0xFF
        if debug_enabled("io"):
            debug_log("io", "out port=%02x val=%02x", port, value)
        handler = self._writers[port]
        if handler is not None:
            handler(port, value)
        self._outputs[port] = value

    def last_output(self, port: int) -> int:
        """Return the last byte written to ``port`` without side effects."""

        self._check(port)
        return self._outputs[port]

    def reset_latches(self) -> None:
        self._inputs[:] = bytes(PORT_COUNT)
        self._outputs[:] = bytes(PORT_COUNT)
