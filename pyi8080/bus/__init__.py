"""Bus-side components: memory and I/O ports."""

from .memory import ADDRESS_SPACE, Memory
from .ports import PORT_COUNT, IOPortBank, PortReadHandler, PortWriteHandler

__all__ = [
    "ADDRESS_SPACE",
    "Memory",
    "PORT_COUNT",
    "IOPortBank",
    "PortReadHandler",
    "PortWriteHandler",
]
