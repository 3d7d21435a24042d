"""
Shared utility functions for SchemaWarp CLI commands.
"""
from typing import Optional

import click
from rich.table import Table

from schemawarp.cli.console import console
from schemawarp.discovery import SourceNotFoundError
from schemawarp.pipeline import MigrationConfig
from schemawarp.pipeline.runner import MigrationResult, migrate_export


def resolve_config(ctx: click.Context, source: Optional[str] = None, **overrides) -> MigrationConfig:
    """Apply command-line overrides to the loaded config and stop on invalid settings."""
    config: MigrationConfig = ctx.obj['config']
    if source:
        config.source_dir = source
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[error]Config error:[/] {error}")
        ctx.exit(2)
    return config


def run_or_exit(ctx: click.Context, config: MigrationConfig) -> MigrationResult:
    """Run the engine over the configured export; missing input is fatal."""
    try:
        with console.status(f"Reading export {config.source_dir}..."):
            return migrate_export(config.source_dir, config)
    except SourceNotFoundError as e:
        console.print(f"[error]{e}[/]")
        ctx.exit(1)


def display_summary(result: MigrationResult):
    """Per-table summary of a run."""
    table = Table(title="Tables", header_style="table.header")
    table.add_column("Source")
    table.add_column("Table", style="blue")
    table.add_column("Rows", justify="right")
    table.add_column("Columns", justify="right")
    table.add_column("Key")
    table.add_column("Issues", justify="right")
    table.add_column("Artifacts", justify="right")

    for build in result.builds:
        if not build.is_valid:
            table.add_row(build.source_name, "[muted]skipped[/]", "-", "-", "-",
                          f"[warning]{build.error_message}[/]", "-")
            continue
        association = result.associations.get(build.table_name)
        matched = len(association.matched) if association else 0
        total = len(association.associations) if association else 0
        key = 'natural' if build.schema.has_natural_key else 'synthetic'
        if build.substituted_count:
            key += f" ([warning]{build.substituted_count} replaced[/])"
        table.add_row(
            build.source_name,
            build.table_name,
            str(len(build.rows)),
            str(len(build.schema.columns)),
            key,
            str(len(build.issues)),
            f"{matched}/{total}",
        )

    console.print(table)
    console.print(
        f"[info]Relations:[/] {len(result.relations)}  "
        f"[info]Links:[/] {len(result.resolution.links)}  "
        f"[info]Unresolved:[/] {len(result.resolution.unresolved)}"
    )
