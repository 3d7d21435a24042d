#!/usr/bin/env python3
"""
SchemaWarp CLI - export folder to PostgreSQL schema

Commands:
    migrate     Generate SQL for tables, relations and descriptions
    diagnose    Write the diagnostic report only
    relations   Show detected relations and their resolution
    artifacts   Scan description files and their naming patterns
    inspect     Row-by-row analysis of one table
    validate    Compare the export with the migrated database
"""
import logging
from typing import Optional

import click

from schemawarp.cli.explore import artifacts_command, inspect_command, relations_command
from schemawarp.cli.migrate import diagnose_command, migrate_command
from schemawarp.cli.validate import validate_command
from schemawarp.pipeline import load_config


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='JSON configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """SchemaWarp - CSV and Markdown export to PostgreSQL"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config_path)


cli.add_command(migrate_command)
cli.add_command(diagnose_command)
cli.add_command(relations_command)
cli.add_command(artifacts_command)
cli.add_command(inspect_command)
cli.add_command(validate_command)


if __name__ == '__main__':
    cli()
