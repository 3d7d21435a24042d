"""
Validate command - compare the export with the migrated database.
"""
from pathlib import Path
from typing import Optional

import click
import psycopg2
from rich.table import Table

from schemawarp.cli.console import console
from schemawarp.cli.helpers import resolve_config, run_or_exit
from schemawarp.storage.validation import validate_migration

STATUS_STYLES = {
    'success': 'success',
    'partial': 'warning',
    'failed': 'error',
    'error': 'error',
    'skipped': 'muted',
}


@click.command('validate')
@click.option('--source', '-s', help='Export folder (one sub-folder per table)')
@click.option('--schema', help='Migrated PostgreSQL schema')
@click.option('--output', '-o', 'output_dir', help='Folder for the validation report')
@click.pass_context
def validate_command(ctx, source: Optional[str], schema: Optional[str], output_dir: Optional[str]):
    """Check row and description counts against the database."""
    config = resolve_config(ctx, source, schema=schema, output_dir=output_dir)
    result = run_or_exit(ctx, config)

    try:
        with console.status("Counting rows in the database..."):
            report = validate_migration(result)
    except psycopg2.OperationalError as e:
        console.print(f"[error]Database connection failed:[/] {e}")
        ctx.exit(1)

    table = Table(title=f"Validation: {config.schema}", header_style="table.header")
    table.add_column("Table")
    table.add_column("Source rows", justify="right")
    table.add_column("DB rows", justify="right")
    table.add_column("Descriptions", justify="right")
    table.add_column("Status")

    for t in report.tables:
        style = STATUS_STYLES.get(t.status, 'info')
        table.add_row(
            t.table_name or t.table,
            str(t.source_rows),
            str(t.database_rows),
            str(t.descriptions),
            f"[{style}]{t.status} {t.completeness}%[/]",
        )
    console.print(table)

    console.print(f"\n[info]Overall completeness:[/] {report.completeness}%")
    path = report.write_json(str(Path(config.output_dir) / 'validation-report.json'))
    console.print(f"[muted]Report: {path}[/]")
