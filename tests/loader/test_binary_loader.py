"""Tests for the raw binary loader."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from pyi8080.bus import Memory
from pyi8080.errors import AddressRangeError
from pyi8080.loader import load_binary, load_binary_from_path


def test_load_binary_bytes() -> None:
    memory = Memory()

    program = load_binary(bytes([0x3E, 0x01, 0x76]), memory, 0x0100)

    assert memory.dump(0x0100, 3) == bytes([0x3E, 0x01, 0x76])
    assert program.entry == 0x0100
    assert [(region.start, region.end) for region in program.regions] == [(0x0100, 0x0102)]
    assert program.size() == 3


def test_load_binary_stream_out_of_range() -> None:
    memory = Memory(0x10)

    with pytest.raises(AddressRangeError):
        load_binary(io.BytesIO(b"\x01" * 0x11), memory)

    assert memory.dump(0, 0x10) == bytes(0x10)


def test_load_binary_from_path(tmp_path: Path) -> None:
    image = tmp_path / "hello.com"
    image.write_bytes(b"\xC3\x00\x01")
    memory = Memory()

    program = load_binary_from_path(image, memory, 0x0100)

    assert program.name == "hello"
    assert memory.read16(0x0101) == 0x0100


def test_empty_image_has_no_regions() -> None:
    program = load_binary(b"", Memory())

    assert program.regions == []
