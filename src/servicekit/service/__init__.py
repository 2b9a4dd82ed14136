"""Service lifecycle management.

Wraps a long-running function as an OS service:
- systemd units on Linux
- launchd agents/daemons on macOS
- PID-file daemonization when explicitly configured

Example:
    from servicekit.service import ServiceUnit, create_service

    manager = create_service(ServiceUnit(work), config)
    await manager.install()
    await manager.start()
"""

from servicekit.service.base import ServiceBackend, ServiceState, ServiceStatus
from servicekit.service.errors import (
    InvalidTransitionError,
    NoServiceSystemError,
    ServiceError,
    ServicePermissionError,
    StopTimeoutError,
    is_permission_error,
    is_recoverable_construction_error,
)
from servicekit.service.manager import ServiceManager, create_service
from servicekit.service.unit import DEFAULT_STOP_TIMEOUT, ServiceUnit, UnitState

__all__ = [
    "DEFAULT_STOP_TIMEOUT",
    "InvalidTransitionError",
    "NoServiceSystemError",
    "ServiceBackend",
    "ServiceError",
    "ServiceManager",
    "ServicePermissionError",
    "ServiceState",
    "ServiceStatus",
    "ServiceUnit",
    "StopTimeoutError",
    "UnitState",
    "create_service",
    "is_permission_error",
    "is_recoverable_construction_error",
]
