"""Export discovery"""
from .export import discover_export, ExportSnapshot, SourceTable, SourceNotFoundError
