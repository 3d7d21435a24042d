"""
Schema builder - turns one raw table into a typed schema plus normalized rows.

Key features:
- Natural key detection (a header normalizing to 'id') forced to UUID
- Synthetic UUID key and timestamp columns when the source has no key
- Key substitution for malformed identifiers, raw value kept for audit
- Row issues collected instead of raised

The builder never aborts on a bad row. A table with no headers or no data rows
comes back with error_message set and no schema.
"""
import logging
from typing import List, Optional, Sequence

from ..metadata.inference import ColumnType, infer_column_type, coerce_value
from ..pipeline.config import DetectionConfig, DEFAULT_LABEL_COLUMNS
from ..utils.identifiers import is_uuid, canonical_uuid, new_uuid
from ..utils.sanitize import NameRegistry, sanitize_name, strip_accents
from .models import (
    RawTable, ColumnSchema, TableSchema, NormalizedRow, RowIssue, TableBuild, IssueKind,
)

logger = logging.getLogger(__name__)

KEY_COLUMN = 'id'
SYNTHETIC_COLUMNS = ('id', 'created_at', 'updated_at')
SPECIAL_CHARACTERS = ("'", '"', '\n', '\r')


def find_label_column(headers: Sequence[str], label_columns: Sequence[str] = DEFAULT_LABEL_COLUMNS) -> Optional[str]:
    """
    Pick the header most likely to hold a row's display name.

    Exact keyword match scores 3, a header containing a keyword scores 2.
    Highest score wins, ties go to the leftmost header. Returns None when
    nothing scores.
    """
    best = None
    best_score = 0

    for header in headers:
        lowered = strip_accents(header).strip().lower()
        if sanitize_name(header) == KEY_COLUMN:
            continue

        score = 0
        for keyword in label_columns:
            if lowered == keyword:
                score = max(score, 3)
            elif keyword in lowered:
                score = max(score, 2)

        if score > best_score:
            best = header
            best_score = score

    return best


def _has_special_characters(value: str) -> bool:
    return any(ch in value for ch in SPECIAL_CHARACTERS)


def build_schema(
    table: RawTable,
    config: Optional[DetectionConfig] = None,
    table_names: Optional[NameRegistry] = None,
) -> TableBuild:
    """
    Build the schema and normalized rows for one raw table.

    Args:
        table: Raw headers and rows as read from the export
        config: Detection settings (sample size, label keywords)
        table_names: Registry of table names already issued in this migration,
            used to keep table names unique

    Returns:
        TableBuild with schema, rows and issues, or error_message when skipped
    """
    config = config or DetectionConfig()
    if table_names is None:
        table_names = NameRegistry()

    if table.read_error:
        logger.warning(f"Skipping table '{table.name}': {table.read_error}")
        return TableBuild(
            source_name=table.name, schema=None,
            error_message=table.read_error, source_path=table.source_path,
            malformed_lines=table.malformed_lines,
        )
    if not table.headers:
        logger.warning(f"Skipping table '{table.name}': no headers")
        return TableBuild(
            source_name=table.name, schema=None,
            error_message='no headers', source_path=table.source_path,
            malformed_lines=table.malformed_lines,
        )
    if not table.rows:
        logger.warning(f"Skipping table '{table.name}': no data rows")
        return TableBuild(
            source_name=table.name, schema=None,
            error_message='no data rows', source_path=table.source_path,
            malformed_lines=table.malformed_lines,
        )

    table_name = table_names.register(table.name)
    if table_name != sanitize_name(table.name):
        logger.warning(f"Table name collision: '{table.name}' stored as '{table_name}'")

    key_header = next((h for h in table.headers if sanitize_name(h) == KEY_COLUMN), None)
    has_natural_key = key_header is not None

    columns = _build_columns(table, key_header, config)
    schema = TableSchema(
        table_name=table_name,
        source_name=table.name,
        columns=columns,
        has_natural_key=has_natural_key,
    )

    label_header = find_label_column(table.headers, config.label_columns)
    if label_header is not None:
        schema.label_column = next(c.normalized_name for c in columns if c.original_name == label_header)

    build = TableBuild(
        source_name=table.name, schema=schema,
        source_path=table.source_path, malformed_lines=table.malformed_lines,
    )
    _normalize_rows(table, build)

    if build.substituted_count:
        _add_original_key_column(build)

    logger.debug(
        f"Built '{table_name}': {len(columns)} columns, {len(build.rows)} rows, "
        f"{len(build.issues)} issues, {build.substituted_count} substituted keys"
    )
    return build


def _build_columns(table: RawTable, key_header: Optional[str], config: DetectionConfig) -> List[ColumnSchema]:
    """Name and type every source column; add the synthetic key columns when needed."""
    if key_header is None:
        registry = NameRegistry(reserved=SYNTHETIC_COLUMNS)
        columns = [
            ColumnSchema('id', 'id', ColumnType.UUID, is_primary_key=True,
                         is_synthetic=True, default='gen_random_uuid()'),
        ]
    else:
        registry = NameRegistry()
        columns = []

    for header in table.headers:
        normalized = registry.register(header)
        if header == key_header and normalized == KEY_COLUMN:
            columns.append(ColumnSchema(header, normalized, ColumnType.UUID, is_primary_key=True))
            continue

        sample = (row.get(header, '') for row in table.rows)
        inferred = infer_column_type(sample, config.type_sample_size)
        columns.append(ColumnSchema(header, normalized, inferred))

    for base, issued in registry.collisions.items():
        logger.warning(f"Column name collision in '{table.name}': '{base}' also issued as {issued}")

    if key_header is None:
        columns.append(ColumnSchema('created_at', 'created_at', ColumnType.TIMESTAMP,
                                    is_synthetic=True, default='NOW()'))
        columns.append(ColumnSchema('updated_at', 'updated_at', ColumnType.TIMESTAMP,
                                    is_synthetic=True, default='NOW()'))

    return columns


def _normalize_rows(table: RawTable, build: TableBuild):
    """Coerce every row, substituting broken keys and recording issues."""
    schema = build.schema
    source_columns = schema.source_columns()
    seen_keys = set()

    for row_number, row in enumerate(table.rows, start=1):
        raw = {col.normalized_name: (row.get(col.original_name) or '') for col in source_columns}
        values = {}
        normalized = NormalizedRow(table_name=schema.table_name, row_number=row_number, values=values, raw=raw)

        if schema.has_natural_key:
            raw_key = raw[KEY_COLUMN].strip()
            normalized.original_key_value = raw_key
            if is_uuid(raw_key):
                key = canonical_uuid(raw_key)
                if key in seen_keys:
                    build.issues.append(RowIssue(schema.table_name, row_number, KEY_COLUMN,
                                                 IssueKind.DUPLICATE_KEY, raw_key))
            else:
                key = new_uuid()
                normalized.substituted = True
                build.issues.append(RowIssue(schema.table_name, row_number, KEY_COLUMN,
                                             IssueKind.INVALID_KEY, raw_key))
        else:
            key = new_uuid()
            values['created_at'] = None
            values['updated_at'] = None

        seen_keys.add(key)
        values[KEY_COLUMN] = key

        for col in source_columns:
            raw_value = raw[col.normalized_name]
            if raw_value and _has_special_characters(raw_value):
                build.issues.append(RowIssue(schema.table_name, row_number, col.normalized_name,
                                             IssueKind.SPECIAL_CHARACTERS, raw_value))
            if col.is_primary_key:
                continue

            value, ok = coerce_value(raw_value, col.inferred_type)
            values[col.normalized_name] = value
            if not ok:
                build.issues.append(RowIssue(schema.table_name, row_number, col.normalized_name,
                                             IssueKind.COERCION_FALLBACK, raw_value))

        if schema.label_column and not raw[schema.label_column].strip():
            build.issues.append(RowIssue(schema.table_name, row_number, schema.label_column,
                                         IssueKind.MISSING_LABEL))

        build.rows.append(normalized)


def _add_original_key_column(build: TableBuild):
    """Keep the raw identifiers alongside substituted keys."""
    schema = build.schema
    registry = NameRegistry(reserved=(c.normalized_name for c in schema.columns))
    name = registry.register('original_id')
    schema.columns.append(ColumnSchema('original_id', name, ColumnType.TEXT, is_synthetic=True))
    schema.original_key_column = name

    for row in build.rows:
        row.values[name] = row.original_key_value or None

    logger.info(
        f"'{schema.table_name}': {build.substituted_count} invalid identifiers replaced, "
        f"originals kept in '{name}'"
    )
