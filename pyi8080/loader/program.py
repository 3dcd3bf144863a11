"""Program metadata structures for 8080 loaders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class AddressRegion:
    """Represents a contiguous address range within the 8080 address space."""

    start: int
    end: int
    comment: str = ""

    def length(self) -> int:
        return self.end - self.start + 1


@dataclass
class ProgramImage:
    """Holds metadata describing what a loader wrote into memory."""

    name: str = ""
    entry: Optional[int] = None
    regions: List[AddressRegion] = field(default_factory=list)

    def add_region(self, start: int, end: int, comment: str = "") -> None:
        self.regions.append(AddressRegion(start, end, comment))

    def size(self) -> int:
        return sum(region.length() for region in self.regions)
