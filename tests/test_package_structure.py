"""Baseline tests ensuring the package skeleton loads correctly."""

import pyi8080


def test_package_exports() -> None:
    for name in ("cpu", "bus", "errors", "loader", "system", "utils"):
        assert hasattr(pyi8080, name), f"missing submodule: {name}"


def test_bus_exports() -> None:
    from pyi8080 import bus

    for name in ("Memory", "IOPortBank", "ADDRESS_SPACE", "PORT_COUNT"):
        assert hasattr(bus, name), f"bus missing symbol: {name}"


def test_error_hierarchy() -> None:
    for name in ("AddressRangeError", "InvalidStateError", "AllocationError"):
        assert issubclass(getattr(pyi8080, name), pyi8080.EmulatorError)
