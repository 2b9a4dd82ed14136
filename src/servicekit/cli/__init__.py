"""Command-line surface for wrapped services."""

from servicekit.cli.app import create_app

__all__ = ["create_app"]
