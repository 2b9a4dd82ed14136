"""Where servicekit keeps its files.

Everything lives under one home directory, ``~/.servicekit`` unless
SERVICEKIT_HOME says otherwise:

    config.toml         default configuration
    logs/<name>.log     stdout/stderr of a service started by launchd or
                        the PID-file backend
    logs/*.jsonl        structured logs (``log_to_file = true``)
    run/<name>.pid      PID of a running supervised service
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "SERVICEKIT_HOME"


@lru_cache(maxsize=1)
def get_home() -> Path:
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".servicekit"


def get_config_path() -> Path:
    return get_home() / "config.toml"


def get_logs_path() -> Path:
    return get_home() / "logs"


def get_run_path() -> Path:
    return get_home() / "run"


def get_pid_path(name: str) -> Path:
    return get_run_path() / f"{name}.pid"


def get_service_log_path(name: str) -> Path:
    return get_logs_path() / f"{name}.log"
