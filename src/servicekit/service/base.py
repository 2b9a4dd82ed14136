"""Backend interface shared by systemd, launchd and the PID-file fallback."""

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from servicekit.config.models import ServiceConfig
from servicekit.service.pid import process_stats

logger = logging.getLogger(__name__)

# Pause between stop and start when a backend restarts in two steps
RESTART_SETTLE_SECONDS = 0.5


class ServiceState(Enum):
    """Service state as reported by the service system."""

    RUNNING = "running"
    STOPPED = "stopped"
    STARTING = "starting"
    STOPPING = "stopping"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class ServiceStatus:
    state: ServiceState
    pid: int | None = None
    uptime_seconds: float | None = None
    memory_mb: float | None = None
    cpu_percent: float | None = None
    message: str | None = None

    @classmethod
    def running(cls, pid: int) -> "ServiceStatus":
        """Status of a running process, with resource usage when readable."""
        stats = process_stats(pid)
        if stats is None:
            return cls(state=ServiceState.RUNNING, pid=pid)
        return cls(
            state=ServiceState.RUNNING,
            pid=pid,
            uptime_seconds=stats.uptime_seconds,
            memory_mb=stats.memory_mb,
            cpu_percent=stats.cpu_percent,
        )


class CommandResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_tool(*argv: str) -> CommandResult:
    """Run a service-system tool such as systemctl and capture its output.

    Raises:
        OSError: If the tool cannot be executed.
    """
    logger.debug("Running %s", shlex.join(argv))
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    result = CommandResult(proc.returncode or 0, stdout.decode(), stderr.decode())
    if not result.ok:
        logger.debug(
            "%s exited with %d: %s", argv[0], result.returncode, result.stderr.strip()
        )
    return result


class ServiceBackend(ABC):
    """Controls one service on the host's service system.

    A backend is bound to a ServiceConfig and the ``command`` that the
    service system should execute to run the service process. Actions
    return False when the service system reports failure and raise OSError
    when it cannot be driven at all.
    """

    def __init__(self, config: ServiceConfig, command: list[str]):
        self.config = config
        self.command = command

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend can run on the current system."""

    @property
    @abstractmethod
    def supports_install(self) -> bool: ...

    @property
    def install_dir(self) -> Path | None:
        """Directory unit files are written to, if the backend has one."""
        return None

    @abstractmethod
    async def start(self) -> bool: ...

    @abstractmethod
    async def stop(self) -> bool: ...

    async def restart(self) -> bool:
        """Stop, then start again."""
        await self.stop()
        await asyncio.sleep(RESTART_SETTLE_SECONDS)
        return await self.start()

    @abstractmethod
    async def status(self) -> ServiceStatus: ...

    @abstractmethod
    async def install(self) -> bool:
        """Register the service so it starts with the system.

        Raises:
            NotImplementedError: If the backend cannot install services.
        """

    @abstractmethod
    async def uninstall(self) -> bool: ...
