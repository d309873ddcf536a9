"""
Build session state and cooperative cancellation.

`BuildSession` is the single owner of the state a UI or CLI shows while a build
runs: working flag, progress fraction, status text, running size estimate and
the accumulated log. Consumers only ever read `snapshot()`; every mutation goes
through the session's own setters, which serialize on one lock.

Only one session can be active in the process at a time.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from ..config.common import SESSION_LOG_FORMAT
from .exceptions import BuildCancelledError, BuildInProgressError


class CancellationToken:
    """Cancellation flag passed down the call chain and polled at stage boundaries."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise BuildCancelledError()


@dataclass(frozen=True)
class SessionSnapshot:
    working: bool
    cancel_requested: bool
    progress: float
    status: str
    estimated_size_bytes: int
    log_text: str


class BuildSession:
    """
    Process-wide state of one build or burn.

    Lifecycle: `begin()` resets the state left by a previous run and claims the
    process-wide slot (raising `BuildInProgressError` if another session holds
    it); `end()` releases it whatever the outcome. The session can be used as a
    context manager.
    """

    _active_lock = threading.Lock()

    def __init__(self):
        self._lock = threading.RLock()
        self._working = False
        self._progress = 0.0
        self._status = ""
        self._estimated_size_bytes = 0
        self._log_lines: list[str] = []
        self._token = CancellationToken()
        self._sink_id: Optional[int] = None
        self._listeners: list[Callable[[SessionSnapshot], None]] = []

    # --- lifecycle ---

    def begin(self):
        if not BuildSession._active_lock.acquire(blocking=False):
            raise BuildInProgressError()
        with self._lock:
            self._working = True
            self._progress = 0.0
            self._status = ""
            self._estimated_size_bytes = 0
            self._log_lines = []
            self._token = CancellationToken()
            self._sink_id = logger.add(self._sink, level="INFO", format=SESSION_LOG_FORMAT)
        self._notify()

    def end(self):
        with self._lock:
            if not self._working:
                return
            self._working = False
            if self._sink_id is not None:
                logger.remove(self._sink_id)
                self._sink_id = None
        BuildSession._active_lock.release()
        self._notify()

    def __enter__(self) -> "BuildSession":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.end()
        return False

    # --- owner-controlled setters ---

    def set_progress(self, value: float, status: Optional[str] = None):
        """Advances progress. Values below the current progress are ignored."""
        with self._lock:
            self._progress = max(self._progress, max(0.0, min(1.0, value)))
            if status is not None:
                self._status = status
        if status is not None:
            logger.debug(f"[{self._progress:.0%}] {status}")
        self._notify()

    def fail(self, status: str = "Failed"):
        """Resets progress to zero and shows a failed status."""
        with self._lock:
            self._progress = 0.0
            self._status = status
        self._notify()

    def set_estimate(self, size_bytes: int):
        with self._lock:
            self._estimated_size_bytes = max(0, int(size_bytes))
        self._notify()

    def append_log(self, line: str):
        with self._lock:
            self._log_lines.append(line)

    def request_cancel(self) -> bool:
        """Marks the session cancelled. Returns False when nothing is running."""
        with self._lock:
            if not self._working:
                return False
            self._token.cancel()
        logger.warning("Cancel requested; stopping...")
        self._notify()
        return True

    def subscribe(self, callback: Callable[[SessionSnapshot], None]):
        with self._lock:
            self._listeners.append(callback)

    # --- readers ---

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def working(self) -> bool:
        return self._working

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                working=self._working,
                cancel_requested=self._token.cancelled,
                progress=self._progress,
                status=self._status,
                estimated_size_bytes=self._estimated_size_bytes,
                log_text="\n".join(self._log_lines),
            )

    def _sink(self, message):
        self.append_log(str(message).rstrip("\n"))

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        snap = self.snapshot()
        for callback in listeners:
            callback(snap)
