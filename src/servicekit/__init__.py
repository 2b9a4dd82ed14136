"""Run any function as an installable OS service."""

from servicekit.config import ServiceConfig, load_config
from servicekit.launcher import (
    Launcher,
    get_default_launcher,
    launch_service,
    launch_service_run,
)
from servicekit.service import (
    NoServiceSystemError,
    ServiceError,
    ServiceManager,
    ServicePermissionError,
    ServiceUnit,
    StopTimeoutError,
)

__all__ = [
    "Launcher",
    "NoServiceSystemError",
    "ServiceConfig",
    "ServiceError",
    "ServiceManager",
    "ServicePermissionError",
    "ServiceUnit",
    "StopTimeoutError",
    "get_default_launcher",
    "launch_service",
    "launch_service_run",
    "load_config",
]
