"""Loaders for 8080 program images."""

from __future__ import annotations

from .binary import load_binary, load_binary_from_path
from .intel_hex import HexFormatError, load_intel_hex, load_intel_hex_from_path
from .program import AddressRegion, ProgramImage

__all__ = [
    "AddressRegion",
    "ProgramImage",
    "HexFormatError",
    "load_binary",
    "load_binary_from_path",
    "load_intel_hex",
    "load_intel_hex_from_path",
]
