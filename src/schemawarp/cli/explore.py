"""
Exploration commands: relations, artifacts, inspect.

Read-only views of an export used before committing to a migration.
"""
import json
from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from schemawarp.artifacts import scan_artifacts
from schemawarp.cli.console import console
from schemawarp.cli.helpers import resolve_config, run_or_exit
from schemawarp.report import analyze_table
from schemawarp.utils import sanitize_name


@click.command('relations')
@click.option('--source', '-s', help='Export folder (one sub-folder per table)')
@click.pass_context
def relations_command(ctx, source: Optional[str]):
    """Show detected relations and how they resolved."""
    config = resolve_config(ctx, source)
    result = run_or_exit(ctx, config)

    if not result.relations:
        console.print("[warning]No relation columns detected[/]")
        return

    table = Table(title="Relations", header_style="table.header")
    table.add_column("Source column")
    table.add_column("Target", style="blue")
    table.add_column("Multi", justify="center")
    table.add_column("Junction")
    table.add_column("Links", justify="right")
    table.add_column("Unresolved")

    for outcome in result.resolution.outcomes:
        relation = outcome.relation
        unresolved = ', '.join(f"{k} {v}" for k, v in sorted(outcome.unresolved_counts().items()))
        if outcome.ambiguous_tokens:
            unresolved += f" [warning](ambiguous {outcome.ambiguous_tokens})[/]"
        table.add_row(
            f"{relation.source_table}.{relation.source_column}",
            relation.target_table or "[muted]text[/]",
            "yes" if relation.multi_valued else "",
            outcome.junction_table or f"[muted]{outcome.skipped_reason or '-'}[/]",
            str(len(outcome.links)),
            unresolved or "-",
        )

    console.print(table)


@click.command('artifacts')
@click.option('--source', '-s', help='Export folder to scan')
@click.option('--output', '-o', 'output_dir', help='Folder for the scan report')
@click.pass_context
def artifacts_command(ctx, source: Optional[str], output_dir: Optional[str]):
    """Scan description files and summarize how they are named."""
    config = resolve_config(ctx, source, output_dir=output_dir)
    root = Path(config.source_dir)
    if not root.is_dir():
        console.print(f"[error]Export folder not found: {root}[/]")
        ctx.exit(1)

    with console.status("Scanning description files..."):
        report = scan_artifacts(str(root), config.artifact_extension)

    stats = report.statistics
    console.print(f"\n[info]Files:[/] {len(report.files)}  "
                  f"[info]with key:[/] {stats['with_key']}  [info]without:[/] {stats['without_key']}  "
                  f"[info]frontmatter:[/] {stats['with_frontmatter']}  [info]empty:[/] {stats['empty']}")

    table = Table(title="By table", header_style="table.header")
    table.add_column("Folder")
    table.add_column("Files", justify="right")
    table.add_column("Patterns")
    for name, info in sorted(report.by_table.items(), key=lambda item: -item[1]['count']):
        patterns = ', '.join(f"{p} {n}" for p, n in info['patterns'].items())
        table.add_row(name, str(info['count']), patterns)
    console.print(table)

    for suggestion in report.suggestions:
        console.print(f"  [highlight]>[/] {suggestion}")

    path = Path(config.output_dir) / 'all-md-files.json'
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding='utf-8')
    console.print(f"\n[muted]Report: {path}[/]")


@click.command('inspect')
@click.option('--source', '-s', help='Export folder (one sub-folder per table)')
@click.option('--table', '-t', 'table_name', required=True, help='Table folder name or normalized table name')
@click.option('--output', '-o', 'output_dir', help='Folder for the analysis report')
@click.pass_context
def inspect_command(ctx, source: Optional[str], table_name: str, output_dir: Optional[str]):
    """Row-by-row analysis of one table."""
    config = resolve_config(ctx, source, output_dir=output_dir)
    result = run_or_exit(ctx, config)

    wanted = sanitize_name(table_name)
    build = next(
        (b for b in result.builds if b.source_name == table_name or b.table_name == wanted),
        None,
    )
    if build is None:
        console.print(f"[error]Table '{table_name}' not found[/]")
        ctx.exit(1)
    if not build.is_valid:
        console.print(f"[warning]Table '{table_name}' was skipped: {build.error_message}[/]")
        return

    analysis = analyze_table(build)

    columns = Table(title=f"Columns: {build.table_name}", header_style="table.header")
    columns.add_column("Original")
    columns.add_column("Column", style="blue")
    columns.add_column("Type")
    for col in analysis['columns']:
        name = col['name'] + (" [highlight](pk)[/]" if col['primary_key'] else "")
        columns.add_row(col['original'], name, col['type'])
    console.print(columns)

    console.print(f"\n[info]Rows:[/] {analysis['rows']}  "
                  f"[info]problematic:[/] {analysis['problematic_rows']}")
    for kind, count in sorted(analysis['issues'].items()):
        console.print(f"  {kind}: [count]{count}[/]")

    path = Path(config.output_dir) / 'table-analysis.json'
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(analysis, indent=2, ensure_ascii=False, default=str), encoding='utf-8')
    console.print(f"\n[muted]Report: {path}[/]")
