"""Configuration models using Pydantic."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ConfigError(Exception):
    """Configuration error."""


class ServiceConfig(BaseModel):
    """Configuration for a wrapped service.

    ``name`` and ``description`` are normally supplied by the launcher and
    override whatever the config file says.
    """

    name: str = ""
    display_name: str | None = None
    description: str = ""

    # Command line the service manager runs. When executable is unset the
    # current interpreter and script are used.
    executable: str | None = None
    arguments: list[str] = []
    working_directory: str | None = None
    environment: dict[str, str] = {}

    # User-level units (systemctl --user, ~/Library/LaunchAgents) need no root
    user_service: bool = True
    backend: Literal["auto", "systemd", "launchd", "generic"] = "auto"
    restart_on_failure: bool = True

    # Stop waits this long for the wrapped function to return
    stop_timeout: float = Field(default=30.0, gt=0)
    raise_on_timeout: bool = False

    # Supervised runs also write JSONL logs under ~/.servicekit/logs
    log_to_file: bool = False

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if any(c in value for c in "/\\ \t\n"):
            raise ValueError(f"Invalid service name: {value!r}")
        return value

    @property
    def label(self) -> str:
        """Human-readable service name."""
        return self.display_name or self.name
