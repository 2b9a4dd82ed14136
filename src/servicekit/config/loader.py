"""Configuration loading from TOML files."""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from servicekit.config.models import ConfigError, ServiceConfig
from servicekit.config.paths import get_config_path

logger = logging.getLogger(__name__)


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("servicekit.toml"),  # Current directory
        get_config_path(),  # ~/.servicekit/config.toml (or SERVICEKIT_HOME)
    ]


def _extract_service_section(raw: dict[str, Any]) -> dict[str, Any]:
    """Use the [service] table when present, else top-level keys."""
    section = raw.get("service")
    if isinstance(section, dict):
        return section
    return raw


def load_config(path: Path | None = None) -> ServiceConfig:
    """Load service configuration from a TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exist.

    Returns:
        Validated ServiceConfig instance.

    Raises:
        ConfigError: If the file is missing, unparseable, or invalid.
    """
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        candidates = [path]
    else:
        candidates = [p for p in _get_default_config_paths() if p.exists()]

    if not candidates:
        logger.debug("No config file found, using defaults")
        return ServiceConfig()

    config_path = candidates[0]
    try:
        with config_path.open("rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        config = ServiceConfig.model_validate(_extract_service_section(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    logger.debug("Loaded config from %s", config_path)
    return config
