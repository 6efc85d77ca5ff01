"""Command: audittrail list - List recent audit entries."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from audittrail.constants import DEFAULT_LIST_LIMIT


console = Console()


def list_entries(
    database_url: str | None = typer.Option(
        None, "--database-url", "-d", help="Database URL (defaults to AUDIT_DATABASE_URL)"
    ),
    entity: str | None = typer.Option(
        None, "--entity", "-e", help="Only entries for this entity type"
    ),
    author: str | None = typer.Option(None, "--author", "-a", help="Only entries by this author"),
    limit: int = typer.Option(DEFAULT_LIST_LIMIT, "--limit", "-n", min=1, help="Maximum rows"),
) -> None:
    """List the most recent audit entries, newest first."""
    from sqlalchemy.exc import SQLAlchemyError

    from audittrail.core.audit.repos import AuditRepository
    from audittrail.core.database import create_engine_from_settings, create_session_factory

    engine = create_engine_from_settings(database_url=database_url)
    try:
        with create_session_factory(engine)() as session:
            entries, total = AuditRepository(session).latest(
                limit=limit,
                entity_type_name=entity,
                author=author,
            )
    except SQLAlchemyError as exc:
        console.print(f"[red]Error:[/red] Could not read audit entries: {exc}")
        raise typer.Exit(1) from exc
    finally:
        engine.dispose()

    if not entries:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Audit Entries ({len(entries)} of {total})", show_header=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("State", no_wrap=True)
    table.add_column("Entity", no_wrap=True)
    table.add_column("Key")
    table.add_column("Author", style="green")
    table.add_column("Date", no_wrap=True)

    for entry in entries:
        table.add_row(
            str(entry.id),
            entry.state_name,
            entry.entity_type_name,
            escape(entry.entity_key or ""),
            escape(entry.created_by or ""),
            entry.created_date.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print()
    console.print(table)
    console.print()
