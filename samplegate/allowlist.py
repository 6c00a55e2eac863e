"""Debug-sampling allow-list: immutable entries and configurations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class AllowListEntry:
    csid: str
    deadline: int


@dataclass(frozen=True)
class Configuration:
    """Ordered, immutable set of allow-list entries.

    Duplicate csids are legal; the effective deadline for a csid is the
    latest one among its entries.
    """

    entries: tuple[AllowListEntry, ...] = ()
    _deadlines: dict[str, int] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        entries = tuple(self.entries)
        deadlines: dict[str, int] = {}
        for entry in entries:
            current = deadlines.get(entry.csid)
            if current is None or entry.deadline > current:
                deadlines[entry.csid] = entry.deadline
        object.__setattr__(self, "entries", entries)
        object.__setattr__(self, "_deadlines", deadlines)

    @classmethod
    def empty(cls) -> Configuration:
        return cls(())

    def deadline_for(self, csid: str) -> int | None:
        """O(1) lookup of the effective deadline for csid."""
        return self._deadlines.get(csid)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[AllowListEntry]:
        return iter(self.entries)
