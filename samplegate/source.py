"""Raw configuration sources: inline literal, polled file, or unresolved.

Descriptor forms:
    data:<payload>   inline payload, delivered once
    file:<path>      file contents, re-read every poll interval

Anything else resolves to a source that never delivers.
"""

from __future__ import annotations

import inspect
import logging
import threading
import weakref
from pathlib import Path
from typing import Callable

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0

BytesCallback = Callable[[bytes], None]


class SourceUnresolvedError(ValueError):
    """Raised when a descriptor names no known source kind."""


def _weak_callback(fn: BytesCallback) -> Callable[[], BytesCallback | None]:
    """Hold bound methods weakly so a poller never keeps its owner alive."""
    if inspect.ismethod(fn):
        return weakref.WeakMethod(fn)
    return lambda: fn


class ConfigSource:
    """Supplies raw configuration bytes to a single consumer."""

    kind = "base"

    def __init__(self) -> None:
        self._started = False

    def start(self, on_bytes: BytesCallback) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def _mark_started(self) -> None:
        if self._started:
            raise RuntimeError(f"{self.kind} source already started")
        self._started = True

    def __enter__(self) -> ConfigSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class UnresolvedSource(ConfigSource):
    """Permanently empty source: never delivers, never calls back."""

    kind = "unresolved"

    def __init__(self, descriptor: str) -> None:
        super().__init__()
        self.descriptor = descriptor

    def start(self, on_bytes: BytesCallback) -> None:
        self._mark_started()


class InlineSource(ConfigSource):
    kind = "inline"

    def __init__(self, payload: bytes) -> None:
        super().__init__()
        self.payload = payload

    def start(self, on_bytes: BytesCallback) -> None:
        """Deliver the payload once, synchronously."""
        self._mark_started()
        on_bytes(self.payload)


class FileSource(ConfigSource):
    """Polls a file and delivers its bytes whenever they change."""

    kind = "file"

    def __init__(self, path: Path, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        super().__init__()
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.path = path
        self.poll_interval = poll_interval
        self._last_delivered: bytes | None = None
        self._stop = threading.Event()
        # Held while calling back; close() takes it so no delivery outlives close().
        self._deliver_lock = threading.RLock()
        self._thread: threading.Thread | None = None

    def start(self, on_bytes: BytesCallback) -> None:
        """Read the file now, then keep polling on a background thread."""
        self._mark_started()
        ref = _weak_callback(on_bytes)
        self._poll_once(ref)
        self._thread = threading.Thread(
            target=self._run,
            args=(ref,),
            name=f"samplegate-poll-{self.path.name}",
            daemon=True,
        )
        self._thread.start()
        log.info("Polling %s every %ss", self.path, self.poll_interval)

    def close(self) -> None:
        self._stop.set()
        with self._deliver_lock:
            pass
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.poll_interval * 2)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, ref: Callable[[], BytesCallback | None]) -> None:
        while not self._stop.wait(self.poll_interval):
            try:
                if ref() is None or not self._poll_once(ref):
                    log.debug("Owner of %s source is gone, stopping poller", self.path)
                    return
            except Exception:
                log.warning("Config source callback failed: %s", self.path, exc_info=True)

    def _poll_once(self, ref: Callable[[], BytesCallback | None]) -> bool:
        """Read once and deliver if changed. Returns False when the callback is gone."""
        try:
            data = self.path.read_bytes()
        except OSError as e:
            log.warning("Config file not readable, skipping poll: %s (%s)", self.path, e)
            return True
        if data == self._last_delivered:
            log.debug("Config file unchanged: %s", self.path)
            return True
        callback = ref()
        if callback is None:
            return False
        with self._deliver_lock:
            if self._stop.is_set():
                return True
            self._last_delivered = data
            callback(data)
        return True


def _inline(value: str, poll_interval: float) -> ConfigSource:
    return InlineSource(value.strip().encode("utf-8"))


def _file(value: str, poll_interval: float) -> ConfigSource:
    value = value.strip()
    if not value:
        raise SourceUnresolvedError("file: descriptor has an empty path")
    return FileSource(Path(value).expanduser(), poll_interval)


_SOURCE_KINDS: dict[str, Callable[[str, float], ConfigSource]] = {
    "data": _inline,
    "file": _file,
}


def _build_source(descriptor: str, poll_interval: float) -> ConfigSource:
    scheme, sep, value = descriptor.partition(":")
    factory = _SOURCE_KINDS.get(scheme.strip().lower()) if sep else None
    if factory is None:
        raise SourceUnresolvedError(f"No config source for descriptor {descriptor!r}")
    return factory(value, poll_interval)


def resolve_source(descriptor: str, poll_interval: float = DEFAULT_POLL_INTERVAL) -> ConfigSource:
    """Pick a source for descriptor. Unresolvable descriptors yield UnresolvedSource."""
    try:
        return _build_source(descriptor or "", poll_interval)
    except SourceUnresolvedError as e:
        log.warning("%s; debug sampling stays disabled", e)
        return UnresolvedSource(descriptor)
