"""Read-stream debug-info sampling permissions.

SamplingConfig wires a config source to the decoder and the snapshot store,
answers per-csid permission queries, and notifies a single listener each
time a new configuration is adopted.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from samplegate.allowlist import Configuration
from samplegate.codec import DecodeError, decode
from samplegate.snapshot import Snapshot, SnapshotStore
from samplegate.source import DEFAULT_POLL_INTERVAL, ConfigSource, resolve_source

log = logging.getLogger(__name__)

_LOCK_RETRY_SECONDS = 0.05

UpdateCallback = Callable[[Configuration], None]


class SamplingConfig:
    def __init__(self, descriptor: str, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._store = SnapshotStore()
        self._callback: UpdateCallback | None = None
        # Shared by install+notify and registration so each listener sees
        # every installed configuration exactly once.
        self._notify_lock = threading.RLock()
        self._closed = False
        self._source = resolve_source(descriptor, poll_interval)
        self._source.start(self._on_bytes)

    @property
    def source(self) -> ConfigSource:
        return self._source

    @property
    def version(self) -> int:
        return self._store.version

    def snapshot(self) -> Snapshot:
        return self._store.snapshot()

    def current(self) -> Configuration:
        return self._store.current()

    def is_allowed(self, csid: str, now: float | None = None) -> bool:
        """True if csid may sample debug info at `now` (epoch seconds, default: current time)."""
        if not csid or not isinstance(csid, str):
            return False
        deadline = self._store.current().deadline_for(csid)
        if deadline is None:
            return False
        if now is None:
            now = time.time()
        return now < deadline

    def set_update_callback(self, callback: UpdateCallback | None) -> None:
        """Register the single update listener, replacing any previous one.

        If a configuration is already installed, the callback is invoked
        immediately with it.
        """
        with self._notify_lock:
            self._callback = callback
            snapshot = self._store.snapshot()
            if callback is not None and snapshot.version > 0:
                self._notify(callback, snapshot.configuration)

    on_update = set_update_callback

    def close(self) -> None:
        """Stop the underlying source. No callbacks fire after this returns."""
        self._closed = True
        # Wait out a notification running on another thread.
        with self._notify_lock:
            pass
        self._source.close()

    def __enter__(self) -> SamplingConfig:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_source", None) is not None:
            self.close()

    def _acquire_notify_lock(self) -> bool:
        """Take the notify lock, giving up once closed.

        A listener may call close() while holding the lock; a delivery
        waiting here must then back off so the poller can stop.
        """
        while not self._notify_lock.acquire(timeout=_LOCK_RETRY_SECONDS):
            if self._closed:
                return False
        return True

    def _on_bytes(self, data: bytes) -> None:
        if self._closed:
            return
        try:
            config = decode(data)
        except DecodeError as e:
            log.warning(
                "Rejected debug sampling config (keeping version %d): %s",
                self._store.version,
                e,
            )
            return
        if not self._acquire_notify_lock():
            return
        try:
            if self._closed:
                return
            snapshot = self._store.install(config)
            log.info(
                "Adopted debug sampling config version %d with %d entries",
                snapshot.version,
                len(config),
            )
            if self._callback is not None:
                self._notify(self._callback, config)
        finally:
            self._notify_lock.release()

    @staticmethod
    def _notify(callback: UpdateCallback, config: Configuration) -> None:
        try:
            callback(config)
        except Exception:
            log.exception("Debug sampling update callback failed")
