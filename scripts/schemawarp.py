#!/usr/bin/env python3
"""
SchemaWarp CLI launcher for a source checkout.

Usage:
    python scripts/schemawarp.py diagnose --source ./export
    python scripts/schemawarp.py migrate --source ./export --output ./output
"""
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from schemawarp.cli.main import cli

if __name__ == '__main__':
    cli()
