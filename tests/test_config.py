"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from servicekit.config import ConfigError, ServiceConfig, load_config
from servicekit.config.paths import (
    get_config_path,
    get_home,
    get_pid_path,
    get_service_log_path,
)


class TestServiceConfig:
    def test_defaults(self):
        config = ServiceConfig(name="worker")

        assert config.user_service is True
        assert config.backend == "auto"
        assert config.stop_timeout == 30.0
        assert config.raise_on_timeout is False
        assert config.label == "worker"

    def test_display_name_label(self):
        assert ServiceConfig(name="worker", display_name="Worker").label == "Worker"

    def test_rejects_name_with_spaces(self):
        with pytest.raises(ValidationError):
            ServiceConfig(name="my worker")

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            ServiceConfig(name="worker", stop_timeout=0)

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            ServiceConfig(name="worker", backend="upstart")


class TestLoadConfig:
    def test_service_table(self, tmp_path: Path):
        path = tmp_path / "servicekit.toml"
        path.write_text(
            """
[service]
name = "worker"
user_service = false
stop_timeout = 5
environment = { MODE = "prod" }
"""
        )

        config = load_config(path)

        assert config.name == "worker"
        assert config.user_service is False
        assert config.stop_timeout == 5
        assert config.environment == {"MODE": "prod"}

    def test_top_level_keys(self, tmp_path: Path):
        path = tmp_path / "servicekit.toml"
        path.write_text('name = "worker"\narguments = ["-l", "DEBUG"]\n')

        config = load_config(path)

        assert config.arguments == ["-l", "DEBUG"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("not valid toml [[[")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text('[service]\nbackend = "upstart"\n')

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == ServiceConfig()

    def test_home_config(self, tmp_path: Path, monkeypatch, servicekit_home: Path):
        monkeypatch.chdir(tmp_path)
        servicekit_home.mkdir(parents=True)
        (servicekit_home / "config.toml").write_text('[service]\nname = "homed"\n')

        assert load_config().name == "homed"


class TestPaths:
    def test_home_from_env(self, servicekit_home: Path):
        assert get_home() == servicekit_home.resolve()
        assert get_config_path() == servicekit_home.resolve() / "config.toml"

    def test_service_paths(self, servicekit_home: Path):
        home = servicekit_home.resolve()
        assert get_pid_path("worker") == home / "run" / "worker.pid"
        assert get_service_log_path("worker") == home / "logs" / "worker.log"
