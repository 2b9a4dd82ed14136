"""PID files and process inspection for supervised services."""

import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path

import psutil


@dataclass
class ProcessStats:
    """Resource usage of a live process."""

    pid: int
    uptime_seconds: float
    memory_mb: float
    cpu_percent: float


class PidFile:
    """PID file kept by a supervised service process while it runs.

    The file holds just the process ID; start time and resource usage are
    read from the live process instead of being stored.

    Example:
        with PidFile(get_pid_path("worker")):
            await unit.start()
            ...
    """

    def __init__(self, path: Path):
        self.path = path

    def write(self, pid: int | None = None) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{pid or os.getpid()}\n")

    def read(self) -> int | None:
        """PID recorded in the file, or None if missing or unreadable."""
        try:
            return int(self.path.read_text().split()[0])
        except (OSError, ValueError, IndexError):
            return None

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)

    def live_pid(self) -> int | None:
        """PID of the recorded process if it is still running.

        A file naming a process that has exited is removed.
        """
        pid = self.read()
        if pid is None:
            return None
        if is_process_alive(pid):
            return pid
        self.remove()
        return None

    def __enter__(self) -> "PidFile":
        self.write()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.remove()


def is_process_alive(pid: int) -> bool:
    """Check for a running (non-zombie) process."""
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.AccessDenied:
        # Exists, but owned by someone else
        return True
    except psutil.Error:
        return False


def send_signal(pid: int, sig: signal.Signals) -> bool:
    """Send ``sig`` to a process.

    Returns:
        False if the process is gone or cannot be signalled.
    """
    try:
        psutil.Process(pid).send_signal(sig)
    except psutil.Error:
        return False
    return True


def process_stats(pid: int) -> ProcessStats | None:
    """Uptime, memory and CPU usage of a process, or None if unavailable."""
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            uptime = time.time() - proc.create_time()
            memory_mb = proc.memory_info().rss / (1024 * 1024)
        cpu_percent = proc.cpu_percent(interval=0.1)
    except psutil.Error:
        return None
    return ProcessStats(
        pid=pid,
        uptime_seconds=uptime,
        memory_mb=memory_mb,
        cpu_percent=cpu_percent,
    )


def wait_for_exit(pid: int, timeout: float) -> bool:
    """Block until a process exits. Returns False if it outlives ``timeout``."""
    try:
        psutil.Process(pid).wait(timeout=timeout)
    except psutil.TimeoutExpired:
        return False
    except psutil.NoSuchProcess:
        pass
    return True
