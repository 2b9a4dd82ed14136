"""launchd backend for macOS.

User services are LaunchAgents in the ``gui/<uid>`` domain; system services
are LaunchDaemons in the ``system`` domain, which needs root. The job label
is the service name.
"""

import os
import plistlib
import shutil
import sys
from pathlib import Path
from typing import Any

from servicekit.config.paths import get_service_log_path
from servicekit.service.base import (
    CommandResult,
    ServiceBackend,
    ServiceState,
    ServiceStatus,
    run_tool,
)

SYSTEM_DAEMON_DIR = Path("/Library/LaunchDaemons")


def parse_launchctl_list(output: str) -> tuple[int | None, int | None]:
    """Extract the PID and last exit status from ``launchctl list <label>``.

    The output is a plist-ish dictionary:

        {
            "PID" = 123;
            "LastExitStatus" = 0;
        };
    """
    values: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip().strip('"')] = value.strip().rstrip(";").strip('"')

    pid = values.get("PID", "")
    last_exit = values.get("LastExitStatus", "")
    return (
        int(pid) if pid.isdigit() else None,
        int(last_exit) if last_exit.lstrip("-").isdigit() else None,
    )


class LaunchdBackend(ServiceBackend):
    @property
    def name(self) -> str:
        return "launchd"

    @property
    def is_available(self) -> bool:
        return sys.platform == "darwin" and shutil.which("launchctl") is not None

    @property
    def supports_install(self) -> bool:
        return True

    @property
    def label(self) -> str:
        return self.config.name

    @property
    def domain(self) -> str:
        if self.config.user_service:
            return f"gui/{os.getuid()}"
        return "system"

    @property
    def install_dir(self) -> Path:
        if self.config.user_service:
            return Path.home() / "Library" / "LaunchAgents"
        return SYSTEM_DAEMON_DIR

    @property
    def plist_path(self) -> Path:
        return self.install_dir / f"{self.label}.plist"

    async def _launchctl(self, *args: str) -> CommandResult:
        return await run_tool("launchctl", *args)

    async def _loaded(self) -> bool:
        return (await self._launchctl("list", self.label)).ok

    async def start(self) -> bool:
        self._write_plist()
        if await self._loaded():
            return (await self._launchctl("kickstart", f"{self.domain}/{self.label}")).ok
        return (await self._launchctl("bootstrap", self.domain, str(self.plist_path))).ok

    async def stop(self) -> bool:
        if not await self._loaded():
            return True
        return (await self._launchctl("bootout", f"{self.domain}/{self.label}")).ok

    async def restart(self) -> bool:
        if not await self._loaded():
            return await self.start()
        # -k kills the running instance before starting a new one
        result = await self._launchctl("kickstart", "-k", f"{self.domain}/{self.label}")
        return result.ok

    async def status(self) -> ServiceStatus:
        result = await self._launchctl("list", self.label)
        if not result.ok:
            # Not loaded
            return ServiceStatus(state=ServiceState.STOPPED)

        pid, last_exit = parse_launchctl_list(result.stdout)
        if pid:
            return ServiceStatus.running(pid)
        if last_exit:
            return ServiceStatus(
                state=ServiceState.FAILED,
                message=f"Last exit status: {last_exit}",
            )
        return ServiceStatus(state=ServiceState.STOPPED)

    async def install(self) -> bool:
        """Write the plist; RunAtLoad starts it at the next login or boot."""
        self._write_plist()
        return True

    async def uninstall(self) -> bool:
        await self.stop()
        self.plist_path.unlink(missing_ok=True)
        return True

    def build_plist(self) -> dict[str, Any]:
        """Build the job definition for the configured service."""
        config = self.config
        log_path = str(get_service_log_path(config.name))
        plist: dict[str, Any] = {
            "Label": self.label,
            "ProgramArguments": list(self.command),
            "RunAtLoad": True,
            # Restart only after a non-zero exit
            "KeepAlive": {"SuccessfulExit": False}
            if config.restart_on_failure
            else False,
            # Seconds between SIGTERM and SIGKILL on stop
            "ExitTimeOut": int(config.stop_timeout) + 5,
            "StandardOutPath": log_path,
            "StandardErrorPath": log_path,
        }
        if config.environment:
            plist["EnvironmentVariables"] = dict(config.environment)
        if config.working_directory:
            plist["WorkingDirectory"] = config.working_directory
        return plist

    def _write_plist(self) -> None:
        plist = self.build_plist()
        Path(plist["StandardOutPath"]).parent.mkdir(parents=True, exist_ok=True)
        self.plist_path.parent.mkdir(parents=True, exist_ok=True)
        with self.plist_path.open("wb") as f:
            plistlib.dump(plist, f)
