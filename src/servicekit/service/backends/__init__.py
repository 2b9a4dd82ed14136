"""Service backend detection and factory."""

import importlib
import sys
from pathlib import Path

from servicekit.config.models import ServiceConfig
from servicekit.service.base import ServiceBackend
from servicekit.service.errors import NoServiceSystemError

BACKENDS = {
    "systemd": "servicekit.service.backends.systemd.SystemdBackend",
    "launchd": "servicekit.service.backends.launchd.LaunchdBackend",
    "generic": "servicekit.service.backends.generic.GenericBackend",
}


def get_service_command(config: ServiceConfig) -> list[str]:
    """Build the command line the service system should run.

    Resolution order:
    1. config.executable (with config.arguments)
    2. The frozen executable itself
    3. The current interpreter running the current script
    """
    if config.executable:
        return [config.executable, *config.arguments]

    if getattr(sys, "frozen", False):
        return [sys.executable, *config.arguments]

    if sys.argv and sys.argv[0]:
        script = Path(sys.argv[0]).resolve()
        if script.is_file():
            return [sys.executable, str(script), *config.arguments]

    return [sys.executable, *config.arguments]


def _load(name: str, config: ServiceConfig, command: list[str]) -> ServiceBackend:
    # Import dynamically to avoid loading unnecessary backends
    module_path, class_name = BACKENDS[name].rsplit(".", 1)
    module = importlib.import_module(module_path)
    backend_class = getattr(module, class_name)
    return backend_class(config, command)


def detect_backend(config: ServiceConfig, command: list[str]) -> ServiceBackend:
    """Detect the native service system for the current platform.

    Detection order:
    1. macOS: launchd
    2. Linux: systemd (if booted with systemd)

    The generic backend is never auto-selected; it has to be requested.

    Raises:
        NoServiceSystemError: If no native service system is available.
    """
    candidates = []
    if sys.platform == "darwin":
        candidates.append("launchd")
    if sys.platform == "linux":
        candidates.append("systemd")

    for name in candidates:
        backend = _load(name, config, command)
        if backend.is_available:
            return backend

    raise NoServiceSystemError()


def get_backend(
    config: ServiceConfig, command: list[str] | None = None
) -> ServiceBackend:
    """Get the backend named by config.backend, or auto-detect.

    Raises:
        ValueError: If the named backend doesn't exist.
        NoServiceSystemError: If the backend is unavailable on this system.
    """
    if command is None:
        command = get_service_command(config)

    name = config.backend
    if name == "auto":
        return detect_backend(config, command)

    if name not in BACKENDS:
        raise ValueError(f"Unknown backend: {name}. Available: {list(BACKENDS)}")

    backend = _load(name, config, command)
    if not backend.is_available:
        raise NoServiceSystemError(f"{name} is not available on this system")
    return backend


__all__ = ["BACKENDS", "detect_backend", "get_backend", "get_service_command"]
