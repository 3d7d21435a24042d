"""Compare a migration result with what actually landed in PostgreSQL"""
import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import psycopg2

from .connection import get_connection
from .sql import DESCRIPTION_COLUMN

logger = logging.getLogger(__name__)


@dataclass
class TableValidation:
    table: str                      # source display name
    table_name: Optional[str]
    source_rows: int = 0
    database_rows: int = 0
    descriptions: int = 0
    status: str = 'success'         # success | partial | failed | error | skipped
    completeness: int = 0           # database rows as % of source rows
    error: Optional[str] = None


@dataclass
class ValidationReport:
    schema: str
    tables: List[TableValidation] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))

    def status_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for t in self.tables:
            counts[t.status] = counts.get(t.status, 0) + 1
        return counts

    @property
    def completeness(self) -> int:
        source = sum(t.source_rows for t in self.tables if t.status != 'skipped')
        loaded = sum(t.database_rows for t in self.tables if t.status != 'skipped')
        return round(loaded / source * 100) if source else 0

    def to_dict(self) -> dict:
        return {
            'generated_at': self.generated_at,
            'schema': self.schema,
            'completeness': self.completeness,
            'statuses': self.status_counts(),
            'tables': [asdict(t) for t in self.tables],
        }

    def write_json(self, path: str) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding='utf-8')
        return path


def table_status(source_rows: int, database_rows: int) -> Tuple[str, int]:
    completeness = round(database_rows / source_rows * 100) if source_rows else 0
    if completeness == 0:
        return 'failed', completeness
    if completeness < 100:
        return 'partial', completeness
    return 'success', completeness


def _count_rows(cur, schema: str, table_name: str) -> int:
    cur.execute(f"SELECT COUNT(*) FROM {schema}.{table_name}")
    return cur.fetchone()[0]


def _count_descriptions(cur, schema: str, table_name: str) -> int:
    cur.execute("""
        SELECT COUNT(*) FROM information_schema.columns
        WHERE table_schema = %s AND table_name = %s AND column_name = %s
    """, (schema, table_name, DESCRIPTION_COLUMN))
    if cur.fetchone()[0] == 0:
        return 0
    cur.execute(f"SELECT COUNT(*) FROM {schema}.{table_name} WHERE {DESCRIPTION_COLUMN} IS NOT NULL")
    return cur.fetchone()[0]


def validate_migration(result) -> ValidationReport:
    """
    Count rows and descriptions per table and compare with the source rows.

    A table that cannot be queried is reported with status 'error'; the
    remaining tables are still checked.
    """
    schema = result.config.schema
    report = ValidationReport(schema=schema)

    with get_connection() as conn:
        for build in result.builds:
            if not build.is_valid:
                report.tables.append(TableValidation(
                    table=build.source_name, table_name=None, status='skipped', error=build.error_message,
                ))
                continue

            check = TableValidation(table=build.source_name, table_name=build.table_name,
                                    source_rows=len(build.rows))
            try:
                with conn.cursor() as cur:
                    check.database_rows = _count_rows(cur, schema, build.table_name)
                    check.descriptions = _count_descriptions(cur, schema, build.table_name)
                check.status, check.completeness = table_status(check.source_rows, check.database_rows)
            except psycopg2.Error as e:
                conn.rollback()
                check.status = 'error'
                check.error = str(e).strip()
                logger.warning(f"Could not validate {schema}.{build.table_name}: {check.error}")
            report.tables.append(check)

    return report
