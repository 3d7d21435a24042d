"""
Migrate and diagnose commands.

migrate writes the three SQL scripts (tables, relations, descriptions) and
the diagnostic report; with --dry-run only the report is written.
"""
from pathlib import Path
from typing import Optional

import click
import psycopg2
from rich.panel import Panel
from rich.prompt import Confirm

from schemawarp.cli.console import console
from schemawarp.cli.helpers import display_summary, resolve_config, run_or_exit
from schemawarp.report import build_diagnostic_report
from schemawarp.storage import execute_sql, write_migration_files


@click.command('migrate')
@click.option('--source', '-s', help='Export folder (one sub-folder per table)')
@click.option('--output', '-o', 'output_dir', help='Folder for generated SQL and reports')
@click.option('--schema', help='Target PostgreSQL schema')
@click.option('--batch-size', type=int, help='Rows per INSERT statement')
@click.option('--dry-run', is_flag=True, help='Only write the diagnostic report')
@click.option('--apply', 'apply_sql', is_flag=True, help='Execute the generated scripts on the database')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def migrate_command(ctx, source: Optional[str], output_dir: Optional[str], schema: Optional[str],
                    batch_size: Optional[int], dry_run: bool, apply_sql: bool, yes: bool):
    """Convert an export folder into PostgreSQL scripts."""
    config = resolve_config(ctx, source, output_dir=output_dir, schema=schema, batch_size=batch_size)
    result = run_or_exit(ctx, config)

    display_summary(result)
    report = build_diagnostic_report(result)
    report_path = report.write_json(str(Path(config.output_dir) / 'diagnostic-report.json'))

    if dry_run:
        console.print(f"\n[muted]Dry run - no SQL written. Report: {report_path}[/]")
        return

    written = write_migration_files(result, config.output_dir)
    console.print(Panel(
        "\n".join(f"[bold]{kind}:[/] {path}" for kind, path in written.items())
        + f"\n[bold]report:[/] {report_path}",
        title="Generated files",
    ))

    if not apply_sql:
        console.print("\nRun the scripts in order: tables, relations, descriptions")
        return

    if not yes and not Confirm.ask(f"\nExecute on schema '{config.schema}'?", default=False):
        console.print("[muted]Cancelled[/]")
        return

    for kind in ('tables', 'relations', 'descriptions'):
        path = written[kind]
        try:
            with console.status(f"Executing {path.name}..."):
                execute_sql(path.read_text(encoding='utf-8'))
        except psycopg2.Error as e:
            console.print(f"[error]{path.name} failed:[/] {e}")
            ctx.exit(1)
        console.print(f"  [success]Executed {path.name}[/]")

    console.print("\n[success]Migration applied[/]")


@click.command('diagnose')
@click.option('--source', '-s', help='Export folder (one sub-folder per table)')
@click.option('--output', '-o', 'output_dir', help='Folder for the report')
@click.pass_context
def diagnose_command(ctx, source: Optional[str], output_dir: Optional[str]):
    """Analyse an export without generating SQL."""
    config = resolve_config(ctx, source, output_dir=output_dir)
    result = run_or_exit(ctx, config)

    display_summary(result)
    report = build_diagnostic_report(result)
    path = report.write_json(str(Path(config.output_dir) / 'diagnostic-report.json'))

    totals = report.totals
    console.print(Panel(
        f"[bold]Rows:[/] {totals['rows']}\n"
        f"[bold]Invalid keys:[/] {totals['invalid_keys']}  [bold]Duplicate keys:[/] {totals['duplicate_keys']}\n"
        f"[bold]Special characters:[/] {totals['special_characters']}  "
        f"[bold]Missing labels:[/] {totals['missing_labels']}\n"
        f"[bold]Unresolved references:[/] {totals['unresolved_references']}\n"
        f"[bold]Orphan artifacts:[/] {totals['orphan_artifacts']}  "
        f"[bold]Rows without artifact:[/] {totals['rows_without_artifact']}",
        title="Diagnostics",
    ))

    if report.critical_problems:
        console.print("\n[error]Critical problems:[/]")
        for problem in report.critical_problems:
            detail = problem.get('count', problem.get('detail'))
            console.print(f"  [warning]{problem['table']}[/]: {problem['type']} ({detail})")
    else:
        console.print("\n[success]No critical problems[/]")

    console.print(f"\n[muted]Report: {path}[/]")
