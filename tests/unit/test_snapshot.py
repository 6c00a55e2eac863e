"""Tests for samplegate.snapshot — whole-object swap, versioning, concurrent reads."""

import threading

from samplegate.allowlist import AllowListEntry, Configuration
from samplegate.snapshot import SnapshotStore


def _config(marker: int, size: int = 20) -> Configuration:
    return Configuration(tuple(AllowListEntry(f"csid-{i}", marker) for i in range(size)))


class TestSnapshotStore:
    def test_starts_empty(self) -> None:
        store = SnapshotStore()
        assert store.version == 0
        assert store.current() == Configuration.empty()

    def test_install_replaces_and_bumps_version(self) -> None:
        store = SnapshotStore()
        first = _config(1)
        second = _config(2)

        snap = store.install(first)
        assert snap.version == 1
        assert store.current() is first

        store.install(second)
        assert store.version == 2
        assert store.current() is second
        assert store.snapshot().configuration is second

    def test_previous_snapshot_is_untouched(self) -> None:
        store = SnapshotStore()
        old = store.install(_config(1))
        store.install(_config(2))
        assert old.version == 1
        assert old.configuration.deadline_for("csid-0") == 1

    def test_readers_never_observe_partial_config(self) -> None:
        store = SnapshotStore(_config(0))
        stop = threading.Event()
        torn: list[set[int]] = []

        def reader() -> None:
            while not stop.is_set():
                deadlines = {e.deadline for e in store.current()}
                if len(deadlines) != 1:
                    torn.append(deadlines)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        for marker in range(1, 500):
            store.install(_config(marker))
        stop.set()
        for t in readers:
            t.join()

        assert torn == []
        assert store.version == 499

    def test_concurrent_installs_are_serialized(self) -> None:
        store = SnapshotStore()

        def writer(marker: int) -> None:
            for _ in range(100):
                store.install(_config(marker, size=1))

        writers = [threading.Thread(target=writer, args=(m,)) for m in range(4)]
        for t in writers:
            t.start()
        for t in writers:
            t.join()

        assert store.version == 400
