"""CLI application for a wrapped service."""

from typing import TYPE_CHECKING, Annotated

import typer

from servicekit.cli.commands import service
from servicekit.logging import configure_logging

if TYPE_CHECKING:
    from servicekit.launcher import Launcher


def create_app(launcher: "Launcher", lang: str | None = None) -> typer.Typer:
    """Build the Typer app for a launcher.

    Invoked without a subcommand the app only configures logging and hands
    control back to the launcher, which then runs the service.
    """
    config = launcher.config
    app = typer.Typer(
        name=config.name if config else None,
        help=config.description if config else None,
        add_completion=False,
    )

    @app.callback(invoke_without_command=True)
    def main(
        ctx: typer.Context,
        log_level: Annotated[
            str | None,
            typer.Option(
                "--log-level",
                "-l",
                help="Log level (DEBUG, INFO, WARNING, ERROR)",
            ),
        ] = None,
    ) -> None:
        interactive = ctx.invoked_subcommand is not None
        configure_logging(
            level=log_level,
            use_rich=interactive,
            log_to_file=not interactive and bool(config and config.log_to_file),
            service=config.name if config else None,
        )
        launcher.invoked_subcommand = ctx.invoked_subcommand
        launcher.dispatched = True

    service.register(app, launcher, lang)
    return app
