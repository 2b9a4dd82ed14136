"""systemd backend for Linux.

User services are managed with ``systemctl --user`` from unit files in
~/.config/systemd/user; system services use the system manager and
/etc/systemd/system, which needs root.
"""

import shlex
import shutil
from pathlib import Path

from servicekit.service.base import (
    CommandResult,
    ServiceBackend,
    ServiceState,
    ServiceStatus,
    run_tool,
)

SYSTEM_UNIT_DIR = Path("/etc/systemd/system")

# Present only when the host was booted with systemd
SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")

ACTIVE_STATES = {
    "active": ServiceState.RUNNING,
    "reloading": ServiceState.RUNNING,
    "inactive": ServiceState.STOPPED,
    "activating": ServiceState.STARTING,
    "deactivating": ServiceState.STOPPING,
    "failed": ServiceState.FAILED,
}

STATUS_PROPERTIES = ("ActiveState", "SubState", "MainPID", "MemoryCurrent")


def parse_properties(output: str) -> dict[str, str]:
    """Parse ``systemctl show`` output (``Key=value`` lines)."""
    props = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            props[key.strip()] = value.strip()
    return props


def escape_specifiers(value: str) -> str:
    """Double ``%`` so systemd does not expand it as a unit specifier."""
    return value.replace("%", "%%")


class SystemdBackend(ServiceBackend):
    @property
    def name(self) -> str:
        return "systemd"

    @property
    def is_available(self) -> bool:
        return shutil.which("systemctl") is not None and SYSTEMD_RUNTIME_DIR.is_dir()

    @property
    def supports_install(self) -> bool:
        return True

    @property
    def unit_name(self) -> str:
        return f"{self.config.name}.service"

    @property
    def install_dir(self) -> Path:
        if self.config.user_service:
            return Path.home() / ".config" / "systemd" / "user"
        return SYSTEM_UNIT_DIR

    @property
    def service_path(self) -> Path:
        return self.install_dir / self.unit_name

    async def _systemctl(self, *args: str) -> CommandResult:
        if self.config.user_service:
            return await run_tool("systemctl", "--user", *args)
        return await run_tool("systemctl", *args)

    async def _sync_unit(self) -> None:
        """Write the unit file if it is missing or stale, then reload."""
        rendered = self.render_unit()
        if self.service_path.exists() and self.service_path.read_text() == rendered:
            return
        self.service_path.parent.mkdir(parents=True, exist_ok=True)
        self.service_path.write_text(rendered)
        await self._systemctl("daemon-reload")

    async def start(self) -> bool:
        await self._sync_unit()
        return (await self._systemctl("start", self.unit_name)).ok

    async def stop(self) -> bool:
        return (await self._systemctl("stop", self.unit_name)).ok

    async def restart(self) -> bool:
        await self._sync_unit()
        return (await self._systemctl("restart", self.unit_name)).ok

    async def status(self) -> ServiceStatus:
        result = await self._systemctl(
            "show", self.unit_name, f"--property={','.join(STATUS_PROPERTIES)}"
        )
        if not result.ok:
            return ServiceStatus(
                state=ServiceState.UNKNOWN, message=result.stderr.strip() or None
            )

        props = parse_properties(result.stdout)
        state = ACTIVE_STATES.get(props.get("ActiveState", ""), ServiceState.UNKNOWN)
        main_pid = props.get("MainPID", "")
        pid = int(main_pid) if main_pid.isdigit() and main_pid != "0" else None

        if state is ServiceState.RUNNING and pid:
            status = ServiceStatus.running(pid)
        else:
            status = ServiceStatus(state=state, pid=pid)
        if state is ServiceState.FAILED:
            status.message = props.get("SubState") or None

        # cgroup accounting covers processes psutil may not be allowed to read
        memory = props.get("MemoryCurrent", "")
        if pid and memory.isdigit():
            status.memory_mb = int(memory) / (1024 * 1024)
        return status

    async def install(self) -> bool:
        await self._sync_unit()
        return (await self._systemctl("enable", self.unit_name)).ok

    async def uninstall(self) -> bool:
        await self._systemctl("disable", "--now", self.unit_name)
        self.service_path.unlink(missing_ok=True)
        await self._systemctl("daemon-reload")
        return True

    def render_unit(self) -> str:
        """Render the unit file for the configured service."""
        config = self.config
        # ExecStart also expands $VAR from the environment
        exec_start = escape_specifiers(shlex.join(self.command)).replace("$", "$$")
        service = {
            "Type": ["simple"],
            "ExecStart": [exec_start],
            "WorkingDirectory": [escape_specifiers(config.working_directory)]
            if config.working_directory
            else [],
            "Environment": [
                escape_specifiers(shlex.quote(f"{key}={value}"))
                for key, value in sorted(config.environment.items())
            ],
            # systemd's default is 90s; leave room for the unit's own deadline
            "TimeoutStopSec": [f"{config.stop_timeout + 5:g}"],
        }
        if config.restart_on_failure:
            service["Restart"] = ["on-failure"]
            service["RestartSec"] = ["5"]

        sections = {
            "Unit": {
                "Description": [
                    escape_specifiers(config.description or config.label)
                ],
                "After": ["network.target"],
            },
            "Service": service,
            "Install": {
                "WantedBy": [
                    "default.target" if config.user_service else "multi-user.target"
                ],
            },
        }

        lines: list[str] = []
        for section, entries in sections.items():
            if lines:
                lines.append("")
            lines.append(f"[{section}]")
            lines.extend(
                f"{key}={value}" for key, values in entries.items() for value in values
            )
        return "\n".join(lines) + "\n"
