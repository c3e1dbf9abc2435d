"""ESGTrack CLI - async commands over the record service.

Commands:
- init: Initialize database schema
- categories: List record types and their categories
- import: Import a CSV/XLSX/JSON file as a company's new record version
- versions: Show a company's version history
- restore: Restore a historical version as the active one
- validate: Score the active record's completeness
- export: Write the active record's metrics as CSV
- web serve: Run the HTTP API
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from esgtrack.categories import all_definitions, get_definition
from esgtrack.config import get_config
from esgtrack.core.logging import configure_logging
from esgtrack.db.connection import close_db, get_session, init_db
from esgtrack.errors import ESGTrackError
from esgtrack.models import ImportMetadata
from esgtrack.records import VersionedRecordService
from esgtrack.records.export import export_filename, export_metrics_csv

app = typer.Typer(
    name="esgtrack",
    help="ESGTrack - Versioned ESG records per company",
    no_args_is_help=True,
)
web_cli = typer.Typer(help="Web API")
app.add_typer(web_cli, name="web")

console = Console()


def _run(coro) -> None:
    """Run a command coroutine, reporting service errors without a traceback."""

    async def _main():
        try:
            await coro
        finally:
            await close_db()

    try:
        asyncio.run(_main())
    except ESGTrackError as e:
        console.print(f"[bold red]✗ {e.code}:[/bold red] {e.message}")
        raise typer.Exit(code=1) from None


def _definition(record_type: str):
    try:
        return get_definition(record_type)
    except ESGTrackError as e:
        raise typer.BadParameter(e.message, param_hint="--type") from None


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    configure_logging(level=log_level)


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    if drop:
        console.print("[yellow]Dropping existing tables...[/yellow]")

    _run(init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def categories():
    """List record types with their slugs and categories."""
    table = Table(title="Record types")
    table.add_column("Slug", style="cyan")
    table.add_column("Record type")
    table.add_column("Categories", style="dim")

    for definition in all_definitions():
        table.add_row(definition.slug, definition.key, ", ".join(definition.categories))

    console.print(table)


@app.command(name="import")
def import_file(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV/XLSX/JSON file"),
    record_type: str = typer.Option(..., "--type", "-t", help="Record type slug or key"),
    company_id: str = typer.Option(..., "--company", "-c", help="Company ID"),
    user_id: str = typer.Option("cli", "--user", "-u", help="Acting user ID"),
    source: str | None = typer.Option(None, "--source", help="Original source label"),
):
    """Import a file as the company's new record version."""
    definition = _definition(record_type)
    console.print(
        f"[bold]Importing {definition.label}:[/bold] {file_path.name} -> company={company_id}"
    )

    async def _import():
        async with get_session() as session:
            service = VersionedRecordService(
                session, definition, default_source=get_config().imports.default_source_label
            )
            record = await service.import_from_file(
                file_path.read_bytes(),
                file_path.name,
                company_id,
                user_id,
                ImportMetadata(file_name=file_path.name, original_source=source),
            )
            console.print(
                f"[bold green]✓[/bold green] Version {record.version} "
                f"({len(record.metrics)} metrics, batch {record.import_batch_id})"
            )
            for name, value in record.summary_stats.items():
                console.print(f"  {name}: {value}", style="dim")

    _run(_import())


@app.command()
def versions(
    record_type: str = typer.Option(..., "--type", "-t", help="Record type slug or key"),
    company_id: str = typer.Option(..., "--company", "-c", help="Company ID"),
):
    """Show a company's version history."""
    definition = _definition(record_type)

    async def _versions():
        async with get_session() as session:
            history = await VersionedRecordService(session, definition).get_versions(company_id)

        if not history:
            console.print("[yellow]No versions found[/yellow]")
            return

        table = Table(title=f"{definition.label} versions for {company_id}")
        table.add_column("Version", justify="right", style="cyan")
        table.add_column("ID", style="dim")
        table.add_column("Active")
        table.add_column("Created")
        table.add_column("By")
        table.add_column("Period")
        table.add_column("Restored from", style="dim")

        for entry in history:
            period = f"{entry.data_period_start or '?'} - {entry.data_period_end or '?'}"
            table.add_row(
                str(entry.version),
                str(entry.id),
                "[green]yes[/green]" if entry.is_active else "no",
                entry.created_at.isoformat() if entry.created_at else "",
                entry.created_by or "",
                period,
                str(entry.restored_from_id or ""),
            )
        console.print(table)

    _run(_versions())


@app.command()
def restore(
    version_id: UUID = typer.Argument(..., help="Version ID to restore"),
    record_type: str = typer.Option(..., "--type", "-t", help="Record type slug or key"),
    company_id: str = typer.Option(..., "--company", "-c", help="Company ID"),
    user_id: str = typer.Option("cli", "--user", "-u", help="Acting user ID"),
):
    """Restore a historical version as the active one."""
    definition = _definition(record_type)

    async def _restore():
        async with get_session() as session:
            record = await VersionedRecordService(session, definition).restore_version(
                company_id, version_id, user_id
            )
            console.print(
                f"[bold green]✓[/bold green] Restored as version {record.version}: "
                f"{record.restore_notes}"
            )

    _run(_restore())


@app.command()
def validate(
    record_type: str = typer.Option(..., "--type", "-t", help="Record type slug or key"),
    company_id: str = typer.Option(..., "--company", "-c", help="Company ID"),
):
    """Score the active record's completeness."""
    definition = _definition(record_type)

    async def _validate():
        async with get_session() as session:
            report = await VersionedRecordService(session, definition).validate_data(company_id)

        colour = "green" if report.error_count == 0 else "yellow"
        console.print(
            f"[bold {colour}]{report.validation_status.value}[/bold {colour}] "
            f"score={report.data_quality_score} issues={report.error_count}"
        )
        for issue in report.errors:
            console.print(
                f"  [{issue.severity.value}] {issue.metric_name or '-'}: {issue.error_message}"
            )

    _run(_validate())


@app.command()
def export(
    record_type: str = typer.Option(..., "--type", "-t", help="Record type slug or key"),
    company_id: str = typer.Option(..., "--company", "-c", help="Company ID"),
    category: str | None = typer.Option(None, "--category", help="Only this category"),
    output: Path | None = typer.Option(None, "--out", "-o", help="Output CSV file"),
):
    """Write the active record's metrics as CSV."""
    definition = _definition(record_type)
    target = output or Path(export_filename(definition.key, company_id))

    async def _export():
        async with get_session() as session:
            service = VersionedRecordService(session, definition)
            record = await service.get_active_record(company_id)
            metrics = service.to_metrics(record)
            verification_status = record.verification_status

        with target.open("w", encoding="utf-8", newline="") as handle:
            for line in export_metrics_csv(metrics, verification_status, category):
                handle.write(line)
        console.print(f"[green]✓[/green] Export saved to: {target}")

    _run(_export())


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI HTTP API."""
    import uvicorn

    typer.echo(f"Starting ESGTrack API on http://{host}:{port}")
    uvicorn.run("esgtrack.web.app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    app()
