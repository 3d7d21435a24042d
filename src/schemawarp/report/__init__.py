"""Diagnostic reporting"""
from .diagnostics import DiagnosticReport, TableReport, build_diagnostic_report, analyze_table
