"""High-level service management interface."""

import asyncio
import logging
import os
import signal
from collections.abc import Awaitable, Callable

from servicekit.config.models import ServiceConfig
from servicekit.config.paths import get_pid_path
from servicekit.service.backends import get_backend
from servicekit.service.base import ServiceBackend, ServiceState, ServiceStatus
from servicekit.service.errors import (
    ServiceError,
    ServicePermissionError,
    is_permission_error,
)
from servicekit.service.pid import PidFile
from servicekit.service.unit import ServiceUnit

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ServiceManager:
    """Handle on one service registered with the OS service system.

    Pairs the ServiceUnit that runs inside the service process with the
    backend that installs and controls that process from the outside.

    Example:
        manager = create_service(ServiceUnit(work), ServiceConfig(name="worker"))
        await manager.install()
        await manager.start()
    """

    def __init__(
        self,
        unit: ServiceUnit,
        config: ServiceConfig,
        backend: ServiceBackend,
    ):
        self.unit = unit
        self.config = config
        self._backend = backend

    def __str__(self) -> str:
        return self.config.label

    @property
    def backend_name(self) -> str:
        """Get the name of the active backend."""
        return self._backend.name

    @property
    def supports_install(self) -> bool:
        return self._backend.supports_install

    async def _call(self, verb: str, action: Callable[[], Awaitable[bool]]) -> bool:
        """Run a backend action, converting OS failures to ServiceError."""
        try:
            return await action()
        except NotImplementedError as e:
            raise ServiceError(str(e)) from e
        except OSError as e:
            if is_permission_error(e):
                raise ServicePermissionError(
                    f"Permission denied while trying to {verb} {self}: {e}"
                ) from e
            raise ServiceError(f"Error trying to {verb} {self}: {e}") from e

    async def start(self) -> str:
        """Start the service.

        Returns:
            Human-readable result message.

        Raises:
            ServiceError: If the service is already running or fails to start.
        """
        status = await self._backend.status()
        if status.state == ServiceState.RUNNING:
            raise ServiceError(f"{self} already running (PID {status.pid})")

        if not await self._call("start", self._backend.start):
            raise ServiceError(f"{self} failed to start")

        # Wait a moment and check status
        await asyncio.sleep(0.5)
        status = await self._backend.status()
        logger.info("Started %s using %s", self, self.backend_name)
        if status.state == ServiceState.RUNNING and status.pid:
            return f"{self} started using {self.backend_name} (PID {status.pid})"
        return f"{self} started using {self.backend_name}"

    async def stop(self) -> str:
        """Stop the service."""
        status = await self._backend.status()
        if status.state == ServiceState.STOPPED:
            return f"{self} already stopped"

        if not await self._call("stop", self._backend.stop):
            raise ServiceError(f"{self} failed to stop")
        logger.info("Stopped %s", self)
        return f"{self} stopped"

    async def restart(self) -> str:
        """Restart the service."""
        if not await self._call("restart", self._backend.restart):
            raise ServiceError(f"{self} failed to restart")

        await asyncio.sleep(0.5)
        status = await self._backend.status()
        logger.info("Restarted %s", self)
        if status.state == ServiceState.RUNNING and status.pid:
            return f"{self} restarted (PID {status.pid})"
        return f"{self} restarted"

    async def status(self) -> ServiceStatus:
        """Get current service status."""
        return await self._backend.status()

    async def install(self) -> str:
        """Register the service with the service system."""
        if not self._backend.supports_install:
            raise ServiceError(
                f"Install not supported with {self.backend_name} backend. "
                "Requires systemd (Linux) or launchd (macOS)."
            )

        if not await self._call("install", self._backend.install):
            raise ServiceError(f"Installing {self} failed")
        logger.info("Installed %s as %s service", self, self.backend_name)
        return f"Installed {self} as {self.backend_name} service"

    async def uninstall(self) -> str:
        """Remove the service registration."""
        if not await self._call("uninstall", self._backend.uninstall):
            raise ServiceError(f"Uninstalling {self} failed")
        logger.info("Uninstalled %s", self)
        return f"{self} uninstalled"

    async def run(self) -> None:
        """Run the wrapped function as the service process.

        Starts the unit, then waits for SIGINT/SIGTERM or for the function to
        return on its own, and stops the unit. A PID file is kept for the
        lifetime of the call.
        """
        pid_file = PidFile(get_pid_path(self.config.name))
        pid_file.write()

        loop = asyncio.get_running_loop()
        shutdown = asyncio.Event()
        handled: list[signal.Signals] = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, shutdown.set)
                handled.append(sig)
            except (NotImplementedError, RuntimeError):
                # No signal handlers on Windows loops or outside the main thread
                logger.debug("Cannot handle %s in this event loop", sig.name)

        try:
            await self.unit.start(self)

            waiters = {
                asyncio.ensure_future(shutdown.wait()),
                asyncio.ensure_future(self.unit.wait()),
            }
            _, pending = await asyncio.wait(
                waiters, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()

            if shutdown.is_set():
                logger.info("Shutdown requested, stopping %s", self)
            else:
                logger.info("%s returned, shutting down", self)

            await self.unit.stop(self)
        finally:
            for sig in handled:
                loop.remove_signal_handler(sig)
            pid_file.remove()


def _check_permissions(backend: ServiceBackend, config: ServiceConfig) -> None:
    """System-level services need root or a writable unit directory."""
    if config.user_service:
        return
    install_dir = backend.install_dir
    if install_dir is None:
        return
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return
    if os.access(install_dir, os.W_OK):
        return
    raise ServicePermissionError(
        f"Managing system service {config.name} requires root "
        f"(cannot write {install_dir})"
    )


def create_service(unit: ServiceUnit, config: ServiceConfig) -> ServiceManager:
    """Build a ServiceManager for the unit on the detected service system.

    Raises:
        ServiceError: If the config has no service name.
        NoServiceSystemError: If no service system is available.
        ServicePermissionError: If a system service is requested without
            sufficient privileges.
    """
    if not config.name:
        raise ServiceError("Service name is required")

    backend = get_backend(config)
    _check_permissions(backend, config)
    logger.debug("Using %s backend for %s", backend.name, config.name)
    return ServiceManager(unit, config, backend)
