"""Error taxonomy shared by every layer of the 8080 emulator."""

from __future__ import annotations


class EmulatorError(Exception):
    """Base error for emulator failures."""


class AddressRangeError(EmulatorError):
    """Raised when a memory or port access falls outside the valid bounds."""

    def __init__(self, address: int, limit: int, what: str = "address") -> None:
        super().__init__(f"{what} {address:#06x} outside valid range 0x0000-{limit - 1:#06x}")
        self.address = address
        self.limit = limit


class InvalidStateError(EmulatorError):
    """Raised when an operation needs state that is not (or no longer) available."""


class AllocationError(EmulatorError):
    """Raised when an emulator instance cannot allocate its resources."""
