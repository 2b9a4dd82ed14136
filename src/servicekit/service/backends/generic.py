"""PID-file backend for hosts without a service system.

Only used when configured explicitly (``backend = "generic"``), e.g. in a
container. ``start`` spawns the service command detached from the terminal;
the spawned process records itself in a PID file while it runs, which is
what ``stop`` and ``status`` act on.
"""

import asyncio
import os
import signal
import time
from pathlib import Path

from servicekit.config.paths import get_pid_path, get_service_log_path
from servicekit.service.base import ServiceBackend, ServiceState, ServiceStatus
from servicekit.service.pid import PidFile, send_signal, wait_for_exit

# How long start() waits for the spawned process to record its PID
STARTUP_GRACE_SECONDS = 5.0
POLL_INTERVAL = 0.1


class GenericBackend(ServiceBackend):
    @property
    def name(self) -> str:
        return "generic"

    @property
    def is_available(self) -> bool:
        return True

    @property
    def supports_install(self) -> bool:
        return False

    @property
    def pid_path(self) -> Path:
        return get_pid_path(self.config.name)

    @property
    def log_path(self) -> Path:
        return get_service_log_path(self.config.name)

    @property
    def pid_file(self) -> PidFile:
        return PidFile(self.pid_path)

    async def start(self) -> bool:
        if self.pid_file.live_pid() is not None:
            return False

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with self.log_path.open("a") as log_file:  # noqa: ASYNC230
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=log_file,
                stderr=log_file,
                cwd=self.config.working_directory,
                env=self._environment(),
                start_new_session=True,
            )

        deadline = time.monotonic() + STARTUP_GRACE_SECONDS
        while time.monotonic() < deadline:
            if proc.returncode is not None:
                return proc.returncode == 0
            if self.pid_file.live_pid() is not None:
                break
            await asyncio.sleep(POLL_INTERVAL)
        return True

    async def stop(self) -> bool:
        """SIGTERM the recorded process, then SIGKILL it if it lingers.

        The process gets stop_timeout (plus a second of slack) to stop its
        unit, which is how long the unit itself waits for the function.
        """
        pid = self.pid_file.live_pid()
        if pid is None:
            return True

        send_signal(pid, signal.SIGTERM)
        grace = self.config.stop_timeout + 1
        if not await asyncio.to_thread(wait_for_exit, pid, grace):
            send_signal(pid, signal.SIGKILL)
            await asyncio.to_thread(wait_for_exit, pid, grace)
        self.pid_file.remove()
        return True

    async def status(self) -> ServiceStatus:
        pid = self.pid_file.live_pid()
        if pid is None:
            return ServiceStatus(state=ServiceState.STOPPED)
        return ServiceStatus.running(pid)

    async def install(self) -> bool:
        raise NotImplementedError(
            "Install not supported without systemd (Linux) or launchd (macOS)"
        )

    async def uninstall(self) -> bool:
        """Nothing is registered, so there is nothing to remove."""
        return True

    def _environment(self) -> dict[str, str] | None:
        if not self.config.environment:
            return None
        return {**os.environ, **self.config.environment}
