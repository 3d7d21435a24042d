"""
PostgreSQL script rendering for a migration result.

Three scripts, run in order:
    migration-complete.sql       schema, tables, rows
    relations-complete.sql       junction tables and their links
    descriptions-migration.sql   description_content column and updates
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..metadata.inference import ColumnType
from ..pipeline.config import MigrationConfig
from ..utils.sanitize import with_suffix

logger = logging.getLogger(__name__)

DESCRIPTION_COLUMN = 'description_content'
PART_SEPARATOR = '\n\n'

PG_TYPES = {
    ColumnType.TEXT: 'TEXT',
    ColumnType.BOOLEAN: 'BOOLEAN',
    ColumnType.UUID: 'UUID',
    ColumnType.INTEGER: 'INTEGER',
    ColumnType.DECIMAL: 'NUMERIC(12,2)',
    ColumnType.DATE: 'DATE',
    ColumnType.TIMESTAMP: 'TIMESTAMPTZ',
}

RULE = '-- ' + '-' * 70 + '\n'


def pg_type(column_type: ColumnType) -> str:
    return PG_TYPES.get(column_type, 'TEXT')


def quote_literal(text: str) -> str:
    """
    Quote a string as a SQL literal.

    Apostrophes are doubled. Backslashes, newlines, carriage returns and tabs
    switch to an E'' literal with backslash escapes. NUL bytes are dropped,
    PostgreSQL text cannot hold them.
    """
    text = text.replace('\x00', '')
    if any(ch in text for ch in ('\\', '\n', '\r', '\t')):
        escaped = (
            text.replace('\\', '\\\\')
            .replace("'", "''")
            .replace('\n', '\\n')
            .replace('\r', '\\r')
            .replace('\t', '\\t')
        )
        return f"E'{escaped}'"
    return "'" + text.replace("'", "''") + "'"


def escape_sql_value(value: Any, column_type: Optional[ColumnType] = None) -> str:
    """Render a typed value as a SQL literal."""
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return quote_literal(value.isoformat())
    if isinstance(value, date):
        return quote_literal(value.isoformat())

    text = str(value)
    if text == '' and column_type not in (None, ColumnType.TEXT):
        return 'NULL'
    return quote_literal(text)


def _table_header(title: str, lines: List[str]) -> str:
    sql = RULE + f"-- {title}\n"
    for line in lines:
        sql += f"-- {line}\n"
    return sql + RULE + '\n'


def render_table_sql(build, config: MigrationConfig) -> str:
    """CREATE TABLE plus batched INSERTs for one built table."""
    schema = build.schema
    qualified = f"{config.schema}.{schema.table_name}"

    sql = _table_header(f"Table: {schema.table_name}", [
        f"Source: {schema.source_name}",
        f"Rows: {len(build.rows)}",
    ])

    if config.drop_existing_tables:
        sql += f"DROP TABLE IF EXISTS {qualified} CASCADE;\n\n"

    column_defs = []
    for col in schema.columns:
        definition = f"  {col.normalized_name} {pg_type(col.inferred_type)}"
        if col.is_primary_key:
            definition += ' PRIMARY KEY'
        if col.default:
            definition += f" DEFAULT {col.default}"
        column_defs.append(definition)
    sql += f"CREATE TABLE IF NOT EXISTS {qualified} (\n" + ',\n'.join(column_defs) + '\n);\n\n'

    if config.add_comments:
        comment = f"Migrated from {schema.source_name} | {len(build.rows)} rows"
        sql += f"COMMENT ON TABLE {qualified} IS {quote_literal(comment)};\n"
        for col in schema.source_columns():
            if col.original_name != col.normalized_name:
                sql += f"COMMENT ON COLUMN {qualified}.{col.normalized_name} IS {quote_literal(col.original_name)};\n"
        sql += '\n'

    if config.create_indexes and schema.label_column:
        sql += _index_sql(schema.table_name, schema.label_column, qualified) + '\n'

    insert_columns = [c for c in schema.columns if c.default is None or c.is_primary_key]
    names = ', '.join(c.normalized_name for c in insert_columns)
    batch_size = config.batch_size
    total_batches = (len(build.rows) + batch_size - 1) // batch_size

    for i in range(0, len(build.rows), batch_size):
        batch = build.rows[i:i + batch_size]
        sql += f"-- Batch {i // batch_size + 1}/{total_batches}\n"
        sql += f"INSERT INTO {qualified} ({names}) VALUES\n"
        value_lines = []
        for row in batch:
            literals = [escape_sql_value(row.values.get(c.normalized_name), c.inferred_type) for c in insert_columns]
            value_lines.append('  (' + ', '.join(literals) + ')')
        sql += ',\n'.join(value_lines)
        sql += '\nON CONFLICT (id) DO NOTHING;\n\n'

    return sql


def _index_sql(table_name: str, column: str, qualified: str) -> str:
    index_name = with_suffix(f"idx_{table_name}", f"_{column}"[:30])
    return f"CREATE INDEX IF NOT EXISTS {index_name} ON {qualified}({column});\n"


def render_tables_sql(result, config: Optional[MigrationConfig] = None) -> str:
    config = config or result.config
    sql = _table_header('SchemaWarp migration: tables and rows', [
        f"Generated: {datetime.now().isoformat(timespec='seconds')}",
        f"Tables: {len(result.valid_builds)}",
        f"Schema: {config.schema}",
    ])
    sql += f"CREATE SCHEMA IF NOT EXISTS {config.schema};\n"
    sql += f"SET search_path TO {config.schema}, public;\n\n"

    for build in result.valid_builds:
        sql += render_table_sql(build, config)

    for build in result.skipped_builds:
        sql += f"-- Skipped {build.source_name}: {build.error_message}\n"

    sql += '\nRESET search_path;\n'
    return sql


def render_relations_sql(result, config: Optional[MigrationConfig] = None) -> str:
    """Junction tables (one per linked table pair) and guarded link inserts."""
    config = config or result.config
    junctions = result.resolution.junctions()

    sql = _table_header('SchemaWarp migration: many-to-many relations', [
        f"Generated: {datetime.now().isoformat(timespec='seconds')}",
        f"Relations: {len(result.relations)}",
        f"Junction tables: {len(junctions)}",
    ])
    sql += f"SET search_path TO {config.schema}, public;\n\n"

    for junction in junctions:
        t0, t1 = junction.tables
        c0, c1 = junction.columns
        qualified = f"{config.schema}.{junction.name}"

        sql += f"-- Junction: {t0} <-> {t1}\n"
        for relation in junction.relations:
            sql += f"--   from {relation.label}\n"
        if config.drop_existing_tables:
            sql += f"DROP TABLE IF EXISTS {qualified} CASCADE;\n\n"
        sql += (
            f"CREATE TABLE IF NOT EXISTS {qualified} (\n"
            f"  {c0} UUID NOT NULL,\n"
            f"  {c1} UUID NOT NULL,\n"
            f"  created_at TIMESTAMPTZ DEFAULT NOW(),\n"
            f"  PRIMARY KEY ({c0}, {c1}),\n"
            f"  FOREIGN KEY ({c0}) REFERENCES {config.schema}.{t0}(id) ON DELETE CASCADE,\n"
            f"  FOREIGN KEY ({c1}) REFERENCES {config.schema}.{t1}(id) ON DELETE CASCADE\n"
            f");\n\n"
        )
        sql += _index_sql(junction.name, c0, qualified)
        sql += _index_sql(junction.name, c1, qualified) + '\n'
        if config.add_comments:
            sql += f"COMMENT ON TABLE {qualified} IS {quote_literal(f'Many-to-many: {t0} <-> {t1}')};\n\n"

    for outcome in result.resolution.outcomes:
        sql += f"-- Relation: {outcome.relation.label}\n"
        counts = outcome.unresolved_counts()
        if counts:
            sql += '-- Unresolved: ' + ', '.join(f"{reason} {n}" for reason, n in sorted(counts.items())) + '\n'
        if outcome.skipped_reason:
            sql += f"-- Skipped: {outcome.skipped_reason}\n"
        sql += f"-- Links: {len(outcome.links)}\n\n"

    for junction in junctions:
        sql += _junction_inserts(junction, config)

    sql += 'RESET search_path;\n'
    return sql


def _junction_inserts(junction, config: MigrationConfig) -> str:
    if not junction.pairs:
        return f"-- {junction.name}: no valid links\n\n"

    t0, t1 = junction.tables
    c0, c1 = junction.columns
    sql = ''
    for i in range(0, len(junction.pairs), config.batch_size):
        batch = junction.pairs[i:i + config.batch_size]
        values = ',\n'.join(f"  ('{a}'::UUID, '{b}'::UUID)" for a, b in batch)
        sql += (
            f"INSERT INTO {config.schema}.{junction.name} ({c0}, {c1})\n"
            f"SELECT * FROM (VALUES\n{values}\n) AS candidate_links({c0}, {c1})\n"
            f"WHERE EXISTS (SELECT 1 FROM {config.schema}.{t0} WHERE id = candidate_links.{c0})\n"
            f"AND EXISTS (SELECT 1 FROM {config.schema}.{t1} WHERE id = candidate_links.{c1})\n"
            f"ON CONFLICT ({c0}, {c1}) DO NOTHING;\n\n"
        )
    return sql


def render_descriptions_sql(result, config: Optional[MigrationConfig] = None) -> str:
    """Attach matched description files to their rows."""
    config = config or result.config
    sql = _table_header('SchemaWarp migration: descriptions', [
        f"Generated: {datetime.now().isoformat(timespec='seconds')}",
    ])
    sql += f"SET search_path TO {config.schema}, public;\n\n"

    for table_name, association in result.associations.items():
        matched = association.matched
        if not matched:
            continue

        # Several files for one row are concatenated in discovery order
        contents: Dict[str, List[str]] = {}
        for a in matched:
            contents.setdefault(a.matched_row_key, []).append(a.artifact.content)

        qualified = f"{config.schema}.{table_name}"
        sql += f"-- {table_name}: {len(contents)} rows with description, {len(association.orphans)} orphan files\n"
        sql += f"ALTER TABLE {qualified} ADD COLUMN IF NOT EXISTS {DESCRIPTION_COLUMN} TEXT;\n\n"
        for key, parts in contents.items():
            sql += (
                f"UPDATE {qualified}\n"
                f"SET {DESCRIPTION_COLUMN} = {quote_literal(PART_SEPARATOR.join(parts))}\n"
                f"WHERE id = '{key}';\n\n"
            )

    sql += 'RESET search_path;\n'
    return sql


def write_migration_files(result, output_dir: str) -> Dict[str, Path]:
    """Write the three scripts; returns {kind: path}."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    files = {
        'tables': (out / 'migration-complete.sql', render_tables_sql(result)),
        'relations': (out / 'relations-complete.sql', render_relations_sql(result)),
        'descriptions': (out / 'descriptions-migration.sql', render_descriptions_sql(result)),
    }
    written = {}
    for kind, (path, sql) in files.items():
        path.write_text(sql, encoding='utf-8')
        logger.info(f"Wrote {path} ({len(sql) / 1024:.1f} KB)")
        written[kind] = path
    return written
