"""Command: audittrail init-db - Create the audit tables."""

import typer
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError


console = Console()


def init_db(
    database_url: str | None = typer.Option(
        None, "--database-url", "-d", help="Database URL (defaults to AUDIT_DATABASE_URL)"
    ),
) -> None:
    """Create the audit tables if they do not exist.

    Creates audit_entries, audit_entry_properties, xml_audit_entries
    and json_audit_entries.
    """
    from audittrail.core.database import create_audit_tables, create_engine_from_settings

    engine = create_engine_from_settings(database_url=database_url)
    try:
        tables = create_audit_tables(engine)
    except SQLAlchemyError as exc:
        console.print(f"[red]Error:[/red] Could not create audit tables: {exc}")
        raise typer.Exit(1) from exc
    finally:
        engine.dispose()

    for table in tables:
        console.print(f"[green]✓[/green] {table}")
    console.print(f"\n[bold]Audit tables ready[/bold] ({len(tables)} tables)")
