"""Raw binary image loader."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Union

from pyi8080.bus import Memory

from .program import ProgramImage


def load_binary(source: Union[bytes, bytearray, BinaryIO], memory: Memory, address: int = 0x0000,
                *, name: str = "") -> ProgramImage:
    """Copy a raw byte image into ``memory`` starting at ``address``.

    The image is written all-or-nothing; an image that does not fit raises
    :class:`~pyi8080.errors.AddressRangeError` and leaves memory unchanged.
    """

    payload = bytes(source) if isinstance(source, (bytes, bytearray)) else source.read()
    memory.load(payload, address)

    program = ProgramImage(name=name, entry=address)
    if payload:
        program.add_region(address, address + len(payload) - 1)
    return program


def load_binary_from_path(path: Path, memory: Memory, address: int = 0x0000) -> ProgramImage:
    """Load a raw binary image (``.bin``/``.com``) from the filesystem."""

    with path.open("rb") as handle:
        return load_binary(handle, memory, address, name=path.stem)
