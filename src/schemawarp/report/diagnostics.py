"""
Diagnostic report - the structured summary of a migration run.

This is the only output of a dry run: per-table counts of key problems,
special characters, unresolved relations and orphan artifacts, plus the
critical problems and suggestions derived from them.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ..schema.models import IssueKind, TableBuild
from ..storage.sql import escape_sql_value

logger = logging.getLogger(__name__)

SAMPLE_LIMIT = 5
MAX_ROW_SQL_LENGTH = 10000


@dataclass
class TableReport:
    table: str                          # source display name
    table_name: Optional[str]
    status: str                         # 'ok' or 'skipped'
    rows: int = 0
    columns: int = 0
    has_natural_key: bool = False
    label_column: Optional[str] = None
    malformed_lines: int = 0
    issues: Dict[str, int] = field(default_factory=dict)
    substituted_keys: int = 0
    artifacts: int = 0
    orphan_artifacts: List[str] = field(default_factory=list)
    rows_without_artifact: int = 0
    samples: Dict[str, List[dict]] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'table': self.table,
            'table_name': self.table_name,
            'status': self.status,
            'rows': self.rows,
            'columns': self.columns,
            'has_natural_key': self.has_natural_key,
            'label_column': self.label_column,
            'malformed_lines': self.malformed_lines,
            'issues': self.issues,
            'substituted_keys': self.substituted_keys,
            'artifacts': self.artifacts,
            'orphan_artifacts': self.orphan_artifacts,
            'rows_without_artifact': self.rows_without_artifact,
            'samples': self.samples,
            'suggestions': self.suggestions,
            'error': self.error,
        }


@dataclass
class DiagnosticReport:
    source: Optional[str]
    schema: str
    tables: List[TableReport] = field(default_factory=list)
    relations: List[dict] = field(default_factory=list)
    unresolved: Dict[str, int] = field(default_factory=dict)
    critical_problems: List[dict] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))

    @property
    def totals(self) -> Dict[str, int]:
        totals = {
            'tables': len(self.tables),
            'skipped_tables': sum(1 for t in self.tables if t.status == 'skipped'),
            'rows': sum(t.rows for t in self.tables),
            'invalid_keys': 0,
            'duplicate_keys': 0,
            'special_characters': 0,
            'missing_labels': 0,
            'coercion_fallbacks': 0,
            'relations': len(self.relations),
            'links': sum(r['links'] for r in self.relations),
            'unresolved_references': sum(self.unresolved.values()),
            'artifacts': sum(t.artifacts for t in self.tables),
            'orphan_artifacts': sum(len(t.orphan_artifacts) for t in self.tables),
            'rows_without_artifact': sum(t.rows_without_artifact for t in self.tables),
        }
        for t in self.tables:
            totals['invalid_keys'] += t.issues.get(IssueKind.INVALID_KEY, 0)
            totals['duplicate_keys'] += t.issues.get(IssueKind.DUPLICATE_KEY, 0)
            totals['special_characters'] += t.issues.get(IssueKind.SPECIAL_CHARACTERS, 0)
            totals['missing_labels'] += t.issues.get(IssueKind.MISSING_LABEL, 0)
            totals['coercion_fallbacks'] += t.issues.get(IssueKind.COERCION_FALLBACK, 0)
        return totals

    def to_dict(self) -> dict:
        return {
            'generated_at': self.generated_at,
            'source': self.source,
            'schema': self.schema,
            'totals': self.totals,
            'critical_problems': self.critical_problems,
            'unresolved': self.unresolved,
            'relations': self.relations,
            'tables': [t.to_dict() for t in self.tables],
        }

    def write_json(self, path: str) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False, default=str), encoding='utf-8')
        logger.info(f"Diagnostic report written to {path}")
        return path


def _table_report(build: TableBuild, association) -> TableReport:
    if not build.is_valid:
        return TableReport(
            table=build.source_name, table_name=None, status='skipped',
            malformed_lines=build.malformed_lines, error=build.error_message,
        )

    schema = build.schema
    report = TableReport(
        table=build.source_name,
        table_name=schema.table_name,
        status='ok',
        rows=len(build.rows),
        columns=len(schema.columns),
        has_natural_key=schema.has_natural_key,
        label_column=schema.label_column,
        malformed_lines=build.malformed_lines,
        substituted_keys=build.substituted_count,
    )

    for issue in build.issues:
        report.issues[issue.kind] = report.issues.get(issue.kind, 0) + 1
        samples = report.samples.setdefault(issue.kind, [])
        if len(samples) < SAMPLE_LIMIT:
            samples.append(issue.to_dict())

    if association is not None:
        report.artifacts = len(association.associations)
        report.orphan_artifacts = [a.raw_path for a in association.orphans]
        report.rows_without_artifact = len(association.rows_without_artifact)

    if report.issues.get(IssueKind.INVALID_KEY):
        report.suggestions.append('Check the Id column: malformed identifiers were replaced with new UUIDs')
    if report.issues.get(IssueKind.SPECIAL_CHARACTERS):
        report.suggestions.append('Quotes and line breaks found in text values: they are escaped in the SQL')
    if report.orphan_artifacts:
        report.suggestions.append('Rename unmatched description files to include the row UUID or its exact name')
    if report.artifacts and report.rows_without_artifact:
        report.suggestions.append('Some rows have no description file')
    return report


def build_diagnostic_report(result) -> DiagnosticReport:
    """Summarize a MigrationResult."""
    config = result.config
    report = DiagnosticReport(
        source=result.snapshot.root if result.snapshot else config.source_dir,
        schema=config.schema,
    )

    for build in result.builds:
        association = result.associations.get(build.table_name) if build.is_valid else None
        report.tables.append(_table_report(build, association))

    report.relations = [o.to_dict() for o in result.resolution.outcomes]
    report.unresolved = result.resolution.unresolved_counts()

    for t in report.tables:
        if t.status == 'skipped':
            report.critical_problems.append({'table': t.table, 'type': 'skipped-table', 'detail': t.error})
        if t.issues.get(IssueKind.INVALID_KEY):
            report.critical_problems.append(
                {'table': t.table, 'type': IssueKind.INVALID_KEY, 'count': t.issues[IssueKind.INVALID_KEY]})
        if t.issues.get(IssueKind.DUPLICATE_KEY):
            report.critical_problems.append(
                {'table': t.table, 'type': IssueKind.DUPLICATE_KEY, 'count': t.issues[IssueKind.DUPLICATE_KEY]})
        if t.orphan_artifacts:
            report.critical_problems.append(
                {'table': t.table, 'type': 'orphan-artifacts', 'count': len(t.orphan_artifacts)})

    return report


def analyze_table(build: TableBuild) -> dict:
    """
    Row-by-row analysis of one table.

    Lists every row with at least one problem: the builder's row issues plus
    rows whose INSERT value line would exceed MAX_ROW_SQL_LENGTH characters.
    """
    schema = build.schema
    issues_by_row: Dict[int, List[dict]] = {}
    for issue in build.issues:
        issues_by_row.setdefault(issue.row_number, []).append(
            {'kind': issue.kind, 'column': issue.column, 'value': issue.value})

    problematic = []
    for row in build.rows:
        row_issues = list(issues_by_row.get(row.row_number, []))
        literal = ', '.join(escape_sql_value(row.values.get(c.normalized_name), c.inferred_type)
                            for c in schema.columns)
        if len(literal) > MAX_ROW_SQL_LENGTH:
            row_issues.append({'kind': 'sql-too-long', 'column': None, 'value': str(len(literal))})
        if row_issues:
            problematic.append({
                'row': row.row_number,
                'key': row.key,
                'original_key': row.original_key_value,
                'label': row.label(schema),
                'issues': row_issues,
            })

    kinds: Dict[str, int] = {}
    for entry in problematic:
        for issue in entry['issues']:
            kinds[issue['kind']] = kinds.get(issue['kind'], 0) + 1

    return {
        'table': build.source_name,
        'table_name': schema.table_name,
        'rows': len(build.rows),
        'problematic_rows': len(problematic),
        'issues': kinds,
        'columns': [
            {'original': c.original_name, 'name': c.normalized_name,
             'type': c.inferred_type.value, 'primary_key': c.is_primary_key}
            for c in schema.columns
        ],
        'details': problematic,
    }
