"""Single-slot interrupt controller for the 8080."""

from __future__ import annotations

from dataclasses import dataclass

from pyi8080.errors import AddressRangeError

DEFAULT_VECTOR = 0x0038  # RST 7


@dataclass
class InterruptController:
    """Holds one pending interrupt and the address control transfers to.

    The enable bit itself lives in the register file's condition codes; this
    object only tracks whether a request is outstanding. Requests do not queue:
    raising again while one is pending changes nothing.
    """

    vector: int = DEFAULT_VECTOR
    pending: bool = False

    def __post_init__(self) -> None:
        self.set_vector(self.vector)

    def set_vector(self, address: int) -> None:
        if not 0 <= address <= 0xFFFF:
            raise AddressRangeError(address, 0x10000, what="interrupt vector")
        self.vector = address

    def request(self) -> None:
        self.pending = True

    def is_pending(self) -> bool:
        return self.pending

    def clear(self) -> None:
        self.pending = False

    def accept(self) -> int:
        """Consume the pending request and return the vector to jump to."""

        self.pending = False
        return self.vector
