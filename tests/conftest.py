"""Shared test fixtures and factories."""

import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from servicekit.config.models import ServiceConfig
from servicekit.config.paths import ENV_VAR, get_home
from servicekit.service.base import ServiceBackend, ServiceState, ServiceStatus


@pytest.fixture(autouse=True)
def servicekit_home(tmp_path: Path, monkeypatch) -> Iterator[Path]:
    """Point SERVICEKIT_HOME at a temporary directory."""
    home = tmp_path / "servicekit-home"
    monkeypatch.setenv(ENV_VAR, str(home))
    get_home.cache_clear()
    yield home
    get_home.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by the code under test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(name="worker", description="Test worker", stop_timeout=1.0)


@pytest.fixture
def mock_backend() -> MagicMock:
    """A backend that reports a stopped service and succeeds at everything."""
    backend = MagicMock(spec=ServiceBackend)
    backend.name = "mock"
    backend.supports_install = True
    backend.status = AsyncMock(return_value=ServiceStatus(state=ServiceState.STOPPED))
    for action in ("start", "stop", "restart", "install", "uninstall"):
        setattr(backend, action, AsyncMock(return_value=True))
    return backend


@pytest.fixture
def no_sleep(monkeypatch) -> None:
    """Skip the settle delays ServiceManager waits after start/restart."""
    monkeypatch.setattr("servicekit.service.manager.asyncio.sleep", AsyncMock())
