"""Service management commands."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer

from servicekit.cli.console import console, create_table, error, success
from servicekit.cli.descriptions import get_description
from servicekit.service import ServiceError, ServiceManager, ServiceState

if TYPE_CHECKING:
    from servicekit.launcher import Launcher

logger = logging.getLogger(__name__)

STATE_COLORS = {
    ServiceState.RUNNING: "green",
    ServiceState.STOPPED: "yellow",
    ServiceState.FAILED: "red",
    ServiceState.STARTING: "cyan",
    ServiceState.STOPPING: "cyan",
    ServiceState.UNKNOWN: "dim",
}


def fatal(err: BaseException) -> NoReturn:
    """Report an error and abort the command with exit code 1."""
    logger.debug("Command failed", exc_info=err)
    error(str(err))
    raise typer.Exit(1)


def require_manager(launcher: "Launcher") -> ServiceManager:
    """Flags check shared by every service command.

    Any error recorded while constructing the service is fatal here, even
    the ones the launcher itself recovers from.
    """
    if launcher.error is not None:
        fatal(launcher.error)
    if launcher.manager is None:
        fatal(ServiceError("Service has not been initialized"))
    return launcher.manager


def run_service_action(action: Callable[[], Awaitable[str]]) -> None:
    """Run a ServiceManager coroutine, aborting on ServiceError."""
    try:
        message = asyncio.run(action())
    except ServiceError as e:
        fatal(e)
    success(message)


def format_uptime(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{seconds / 60:.0f}m"
    if seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    return f"{seconds / 86400:.1f}d"


def register(app: typer.Typer, launcher: "Launcher", lang: str | None = None) -> None:
    """Register the six service subcommands on ``app``."""

    @app.command("install", help=get_description("install", lang))
    def service_install() -> None:
        manager = require_manager(launcher)
        run_service_action(manager.install)
        run_service_action(manager.start)

    @app.command("uninstall", help=get_description("uninstall", lang))
    def service_uninstall() -> None:
        manager = require_manager(launcher)
        run_service_action(manager.uninstall)

    @app.command("start", help=get_description("start", lang))
    def service_start() -> None:
        manager = require_manager(launcher)
        run_service_action(manager.start)

    @app.command("stop", help=get_description("stop", lang))
    def service_stop() -> None:
        manager = require_manager(launcher)
        run_service_action(manager.stop)

    @app.command("restart", help=get_description("restart", lang))
    def service_restart() -> None:
        manager = require_manager(launcher)
        run_service_action(manager.restart)

    @app.command("status", help=get_description("status", lang))
    def service_status(
        verbose: Annotated[
            bool,
            typer.Option(
                "--verbose",
                "-v",
                help="Show backend, PID and resource usage",
            ),
        ] = False,
    ) -> None:
        manager = require_manager(launcher)
        try:
            status = asyncio.run(manager.status())
        except (ServiceError, OSError) as e:
            fatal(e)

        console.print(f"{manager}: {status.state.value}", markup=False)
        if not verbose:
            return

        table = create_table(
            f"{manager} status",
            [
                ("Property", "cyan"),
                ("Value", ""),
            ],
        )
        color = STATE_COLORS.get(status.state, "white")
        table.add_row("State", f"[{color}]{status.state.value}[/{color}]")
        table.add_row("Backend", manager.backend_name)
        if status.pid:
            table.add_row("PID", str(status.pid))
        if status.uptime_seconds is not None:
            table.add_row("Uptime", format_uptime(status.uptime_seconds))
        if status.memory_mb is not None:
            table.add_row("Memory", f"{status.memory_mb:.1f} MB")
        if status.cpu_percent is not None:
            table.add_row("CPU", f"{status.cpu_percent:.1f}%")
        if status.message:
            table.add_row("Message", status.message)
        console.print(table)
