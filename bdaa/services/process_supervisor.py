"""
Supervision of the external processes spawned by a build.

Every ffmpeg/ffprobe/tsMuxeR invocation of a build goes through one
`ProcessSupervisor`. The supervisor owns the `Popen` handles while they run:
a process is registered when it is spawned and removed when it exits. On
cancellation the supervisor sets the shared `CancellationToken` and, on a
background thread, asks every registered process to stop (SIGTERM, then
SIGINT) before clearing the registry.

Spawning checks the token under the same lock that `kill_all` takes, so once
cancellation has been requested no new process can start.
"""

import signal
import subprocess
import threading
from typing import Optional, Sequence

from loguru import logger

from ..domain.session import CancellationToken


class ProcessSupervisor:
    """
    Registry of running external processes for the active build.

    Attributes:
        token (CancellationToken): The build's cancellation flag.
    """

    def __init__(self, token: Optional[CancellationToken] = None):
        self.token = token or CancellationToken()
        self._lock = threading.Lock()
        self._processes: dict[int, subprocess.Popen] = {}

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._processes)

    def spawn(self, cmd: Sequence[str], env: Optional[dict] = None) -> subprocess.Popen:
        """
        Starts `cmd` with stdout and stderr merged into one pipe and registers it.

        Raises:
            BuildCancelledError: If cancellation was already requested.
            OSError: If the executable cannot be started.
        """
        with self._lock:
            self.token.raise_if_cancelled()
            proc = subprocess.Popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=env,
            )
            self._processes[proc.pid] = proc
        logger.trace(f"Registered process {proc.pid}: {cmd[0]}")
        return proc

    def wait(self, proc: subprocess.Popen) -> tuple[int, str]:
        """Waits for `proc` to exit, unregisters it and returns (returncode, output)."""
        try:
            output, _ = proc.communicate()
        finally:
            self._unregister(proc)
        return proc.returncode, output or ""

    def run(self, cmd: Sequence[str], env: Optional[dict] = None) -> tuple[int, str]:
        """Spawns `cmd` and blocks until it exits."""
        return self.wait(self.spawn(cmd, env=env))

    def _unregister(self, proc: subprocess.Popen):
        with self._lock:
            self._processes.pop(proc.pid, None)

    def cancel(self) -> threading.Thread:
        """
        Marks the build cancelled and terminates all registered processes
        asynchronously. Returns the thread doing the termination.
        """
        self.token.cancel()
        worker = threading.Thread(target=self.kill_all, name="bdaa-kill-all", daemon=True)
        worker.start()
        return worker

    def kill_all(self):
        """Sends SIGTERM and then SIGINT to every registered process and clears the registry."""
        with self._lock:
            processes = list(self._processes.values())
            self._processes.clear()

        for proc in processes:
            if proc.poll() is not None:
                continue
            logger.info(f"Terminating process {proc.pid} ({proc.args[0] if proc.args else '?'})")
            try:
                proc.terminate()
            except OSError as e:
                logger.debug(f"terminate() failed for {proc.pid}: {e}")
            try:
                proc.send_signal(signal.SIGINT)
            except (OSError, ValueError) as e:
                # Windows has no SIGINT for child processes.
                logger.debug(f"SIGINT failed for {proc.pid}: {e}")
