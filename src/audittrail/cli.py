"""Main audittrail CLI application."""

import typer
from rich.console import Console

from audittrail import __version__
from audittrail.commands import init_db, list_cmd, show
from audittrail.core.logging import configure_logging


console = Console()

app = typer.Typer(
    name="audittrail",
    help="Inspect and manage audit trail tables.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands
app.command(name="init-db")(init_db.init_db)
app.command(name="list")(list_cmd.list_entries)
app.command(name="show")(show.show)


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """audittrail CLI - Inspect and manage audit trail tables."""
    if version:
        console.print(f"[bold cyan]audittrail[/bold cyan] version {__version__}")
        raise typer.Exit()


def main() -> None:
    """Entry point for the CLI."""
    configure_logging()
    app()


if __name__ == "__main__":
    main()
