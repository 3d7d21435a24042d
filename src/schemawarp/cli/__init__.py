"""
SchemaWarp CLI module - shared console and commands.
"""
from schemawarp.cli.console import console, custom_theme
from schemawarp.cli.helpers import resolve_config, run_or_exit, display_summary
from schemawarp.cli.migrate import migrate_command, diagnose_command
from schemawarp.cli.explore import relations_command, artifacts_command, inspect_command
from schemawarp.cli.validate import validate_command

__all__ = [
    'console',
    'custom_theme',
    'resolve_config',
    'run_or_exit',
    'display_summary',
    'migrate_command',
    'diagnose_command',
    'relations_command',
    'artifacts_command',
    'inspect_command',
    'validate_command',
]
