"""Atomically swapped holder for the current allow-list configuration."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from samplegate.allowlist import Configuration


@dataclass(frozen=True)
class Snapshot:
    version: int
    configuration: Configuration


class SnapshotStore:
    """Single slot holding the current Snapshot.

    Readers take no lock: the slot is replaced as a whole object, so a
    reference load always sees a complete Snapshot. Writers are serialized.
    """

    def __init__(self, initial: Configuration | None = None) -> None:
        self._write_lock = threading.Lock()
        if initial is None:
            initial = Configuration.empty()
        self._snapshot = Snapshot(0, initial)

    def install(self, config: Configuration) -> Snapshot:
        """Replace the visible configuration. Last install wins."""
        with self._write_lock:
            snapshot = Snapshot(self._snapshot.version + 1, config)
            self._snapshot = snapshot
        return snapshot

    def current(self) -> Configuration:
        return self._snapshot.configuration

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version
