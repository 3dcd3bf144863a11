"""8080 system assembly helpers."""

from __future__ import annotations

from .machine import Emulator, EmulatorConfig, create_emulator

__all__ = [
    "EmulatorConfig",
    "Emulator",
    "create_emulator",
]
