"""Intel 8080 emulator core.

The package is split the way the hardware is: ``bus`` holds memory and I/O
ports, ``cpu`` the register file, decoder, execution engine and interrupt
controller, and ``system`` wires them into an :class:`Emulator` instance.
"""

from __future__ import annotations

from . import errors, utils, bus, cpu, loader, system
from .errors import AddressRangeError, AllocationError, EmulatorError, InvalidStateError
from .system import Emulator, EmulatorConfig, create_emulator

__all__: list[str] = [
    "bus",
    "cpu",
    "errors",
    "loader",
    "system",
    "utils",
    "Emulator",
    "EmulatorConfig",
    "create_emulator",
    "EmulatorError",
    "AddressRangeError",
    "AllocationError",
    "InvalidStateError",
]
