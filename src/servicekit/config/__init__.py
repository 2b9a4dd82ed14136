"""Configuration module."""

from servicekit.config.loader import load_config
from servicekit.config.models import ConfigError, ServiceConfig
from servicekit.config.paths import (
    get_config_path,
    get_home,
    get_logs_path,
    get_pid_path,
    get_run_path,
    get_service_log_path,
)

__all__ = [
    "ConfigError",
    "ServiceConfig",
    "get_config_path",
    "get_home",
    "get_logs_path",
    "get_pid_path",
    "get_run_path",
    "get_service_log_path",
    "load_config",
]
