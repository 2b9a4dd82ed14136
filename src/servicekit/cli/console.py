"""Rich console output for the service commands."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


def error(msg: str) -> None:
    console.print(f"[red]{escape(msg)}[/red]", highlight=False)


def success(msg: str) -> None:
    console.print(f"[green]{escape(msg)}[/green]", highlight=False)


def create_table(title: str, columns: list[tuple[str, str]]) -> Table:
    """Create a table with one (header, style) pair per column."""
    table = Table(title=title, title_justify="left")
    for header, style in columns:
        table.add_column(header, style=style or None)
    return table
