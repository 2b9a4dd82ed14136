"""Service lifecycle errors."""

import errno


class ServiceError(Exception):
    """A service manager operation failed."""


class NoServiceSystemError(ServiceError):
    """No supported service system (systemd, launchd) was detected."""

    def __init__(self, message: str = "no service system detected"):
        super().__init__(message)


class ServicePermissionError(ServiceError):
    """The current user may not manage the requested service."""


class InvalidTransitionError(ServiceError):
    """A lifecycle operation was requested from a state that forbids it."""


class StopTimeoutError(ServiceError):
    """The wrapped function did not return before the stop deadline."""


def is_permission_error(exc: BaseException | None) -> bool:
    """Check whether an error means the user lacks service privileges."""
    if exc is None:
        return False
    if isinstance(exc, (ServicePermissionError, PermissionError)):
        return True
    return isinstance(exc, OSError) and exc.errno in (errno.EACCES, errno.EPERM)


def is_recoverable_construction_error(exc: BaseException | None) -> bool:
    """Construction errors that fall back to running in the foreground."""
    return isinstance(exc, NoServiceSystemError) or is_permission_error(exc)
