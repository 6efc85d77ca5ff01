"""Command: audittrail show - Show one audit entry and its properties."""

from enum import Enum

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table


console = Console()


class OutputFormat(str, Enum):
    TABLE = "table"
    XML = "xml"
    JSON = "json"


def show(
    entry_id: int = typer.Argument(..., help="ID of the audit entry"),
    database_url: str | None = typer.Option(
        None, "--database-url", "-d", help="Database URL (defaults to AUDIT_DATABASE_URL)"
    ),
    output: OutputFormat = typer.Option(
        OutputFormat.TABLE, "--format", "-f", help="Output format"
    ),
) -> None:
    """Show an audit entry with its before/after values."""
    from sqlalchemy.exc import SQLAlchemyError

    from audittrail.core.audit.formatting import properties_to_xml
    from audittrail.core.audit.repos import AuditRepository
    from audittrail.core.audit.schemas import AuditEntryRead
    from audittrail.core.database import create_engine_from_settings, create_session_factory
    from audittrail.core.errors import AuditNotFoundError

    engine = create_engine_from_settings(database_url=database_url)
    try:
        with create_session_factory(engine)() as session:
            entry = AuditRepository(session).get(entry_id)
            data = AuditEntryRead.model_validate(entry)
            xml_properties = properties_to_xml(entry.properties)
    except AuditNotFoundError as exc:
        console.print(f"[red]Error:[/red] Audit entry {entry_id} not found.")
        raise typer.Exit(1) from exc
    except SQLAlchemyError as exc:
        console.print(f"[red]Error:[/red] Could not read audit entry: {exc}")
        raise typer.Exit(1) from exc
    finally:
        engine.dispose()

    # Raw output for piping
    if output is OutputFormat.JSON:
        typer.echo(data.model_dump_json(indent=2))
        return
    if output is OutputFormat.XML:
        typer.echo(xml_properties)
        return

    console.print(
        f"\n[bold cyan]{data.state.value}[/bold cyan] "
        f"{data.entity_type_name} [dim]({data.entity_set_name})[/dim] "
        f"key={data.entity_key or '-'} by {data.created_by or '-'}\n"
    )

    table = Table(show_header=True)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Old")
    table.add_column("New")
    for prop in data.properties:
        name = prop.property_name
        if prop.relation_name:
            name = f"{prop.relation_name}.{name}"
        table.add_row(
            escape(name),
            escape(prop.old_value) if prop.old_value is not None else "[dim]null[/dim]",
            escape(prop.new_value) if prop.new_value is not None else "[dim]null[/dim]",
        )
    console.print(table)
    console.print()
