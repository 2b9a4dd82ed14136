"""Launch a function as an installable service.

Example:
    from servicekit import launch_service_run

    def work() -> None:
        ...

    if __name__ == "__main__":
        launch_service_run("worker", "Background worker", work)

``worker install`` registers and starts the service, ``worker status``
reports on it, and running ``worker`` with no subcommand runs ``work`` under
the service supervisor (or in the foreground when no service system exists).
"""

import asyncio
import inspect
import logging
import sys
import threading
from collections.abc import Callable
from typing import Any

import typer

from servicekit.cli.app import create_app
from servicekit.config.models import ServiceConfig
from servicekit.fileutil import program_path, set_project_path
from servicekit.service import (
    ServiceError,
    ServiceManager,
    ServiceUnit,
    create_service,
    is_recoverable_construction_error,
)
from servicekit.service.unit import ServiceFunc

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[ServiceUnit, ServiceConfig], ServiceManager]


class Launcher:
    """Holds the service built for this process and the CLI that drives it.

    The unit, manager and CLI are built once, on the first ensure() call;
    later calls return the same manager (or construction error).
    """

    def __init__(self, factory: ServiceFactory = create_service):
        self._factory = factory
        self._lock = threading.Lock()
        self._initialized = False

        self.config: ServiceConfig | None = None
        self.unit: ServiceUnit | None = None
        self.manager: ServiceManager | None = None
        self.error: Exception | None = None
        self.app: typer.Typer | None = None

        # Set by the CLI callback during parse()
        self.dispatched = False
        self.invoked_subcommand: str | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def ensure(
        self,
        name: str,
        description: str,
        fn: ServiceFunc,
        config: ServiceConfig | None = None,
    ) -> tuple[ServiceManager | None, Exception | None]:
        """Build the service and register its commands, once.

        Returns:
            Tuple of (manager, construction error); exactly one is None
            unless construction never ran.
        """
        with self._lock:
            if not self._initialized:
                self._initialized = True
                self._initialize(name, description, fn, config)
        return self.manager, self.error

    def _initialize(
        self,
        name: str,
        description: str,
        fn: ServiceFunc,
        config: ServiceConfig | None,
    ) -> None:
        try:
            settings: dict[str, Any] = config.model_dump() if config else {}
            settings.update(name=name, description=description)
            self.config = ServiceConfig.model_validate(settings)

            # A frozen binary resolves relative paths next to itself
            if getattr(sys, "frozen", False):
                set_project_path(program_path())

            self.unit = ServiceUnit(
                fn,
                name=name,
                stop_timeout=self.config.stop_timeout,
                raise_on_timeout=self.config.raise_on_timeout,
            )
            self.manager = self._factory(self.unit, self.config)
        except Exception as e:
            self.error = e
            logger.debug("Service construction for %s failed: %s", name, e)

        self.app = create_app(self)

    def parse(self, args: list[str] | None = None) -> int | None:
        """Dispatch command-line arguments to the registered commands.

        Args:
            args: Arguments to parse, defaults to sys.argv[1:].

        Returns:
            None when no subcommand claimed the invocation, otherwise the
            exit code of the subcommand (or of --help / usage errors).
        """
        if self.app is None:
            raise ServiceError("Launcher has not been initialized")

        self.dispatched = False
        self.invoked_subcommand = None
        prog_name = self.config.name if self.config else None
        # Standalone mode reports usage errors and aborts itself, then exits
        try:
            self.app(args=args, prog_name=prog_name)
        except SystemExit as e:
            code = e.code
        else:
            code = 0

        if self.dispatched and self.invoked_subcommand is None:
            return None
        if code is None:
            return 0
        return code if isinstance(code, int) else 1

    def run(
        self,
        name: str,
        description: str,
        fn: ServiceFunc,
        config: ServiceConfig | None = None,
        args: list[str] | None = None,
    ) -> None:
        """Parse the command line, then run ``fn`` as a service.

        Raises:
            SystemExit: If a subcommand failed.
            ServiceError: If the service could not be constructed for a
                reason other than a missing service system or permissions.
        """
        self.ensure(name, description, fn, config)

        code = self.parse(args)
        if code is not None:
            if code != 0:
                raise SystemExit(code)
            return

        if self.error is not None and not is_recoverable_construction_error(
            self.error
        ):
            raise self.error

        if self.manager is None:
            if self.error is not None:
                logger.warning("%s: running %s in the foreground", self.error, name)
            run_foreground(fn)
            return

        asyncio.run(self.manager.run())


def run_foreground(fn: ServiceFunc) -> None:
    """Call ``fn`` directly, driving coroutine functions with asyncio.run."""
    if inspect.iscoroutinefunction(fn):
        asyncio.run(fn())
    else:
        fn()


_default_launcher = Launcher()


def get_default_launcher() -> Launcher:
    """Get the process-wide launcher used by the module-level functions."""
    return _default_launcher


def launch_service(
    name: str,
    description: str,
    fn: ServiceFunc,
    config: ServiceConfig | None = None,
) -> tuple[ServiceManager | None, Exception | None]:
    """Build the process-wide service for ``fn`` (once) without parsing argv."""
    return _default_launcher.ensure(name, description, fn, config)


def launch_service_run(
    name: str,
    description: str,
    fn: ServiceFunc,
    config: ServiceConfig | None = None,
    args: list[str] | None = None,
) -> None:
    """Build the process-wide service for ``fn``, parse argv, and run it."""
    _default_launcher.run(name, description, fn, config, args)
