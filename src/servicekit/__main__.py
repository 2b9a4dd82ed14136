"""Inspect a servicekit config file: ``python -m servicekit [path]``."""

import sys
from pathlib import Path

from servicekit.cli.console import console, error
from servicekit.config import ConfigError, load_config


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    path = Path(argv[0]) if argv else None
    try:
        config = load_config(path)
    except ConfigError as e:
        error(str(e))
        return 1
    console.print_json(config.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
