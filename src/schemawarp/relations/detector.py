"""Relation column detection and target table guessing"""
import logging
import re
from typing import List, Optional, Sequence

from ..pipeline.config import DetectionConfig
from ..schema.models import ColumnSchema, TableBuild
from .models import Relation

logger = logging.getLogger(__name__)

# 'Parent-Task', 'Project-Owner' style headers
RELATION_HEADER_PATTERN = re.compile(r'^[A-Z][a-z]+-[A-Z]')
KEY_SUFFIX_PATTERN = re.compile(r'_ids?$')


def is_ignored_column(original_name: str, ignore_columns: Sequence[str]) -> bool:
    """
    Substring check against the ignore-list.

    Loose on purpose: 'Due Date' and 'Provider' are both ignored, the first
    via 'date', the second via 'id'.
    """
    lowered = original_name.lower()
    return any(ignored in lowered for ignored in ignore_columns)


def is_relation_column(
    column: ColumnSchema,
    sample_values: Sequence[str],
    config: Optional[DetectionConfig] = None,
) -> bool:
    """
    True if the column looks like a reference to another table.

    Ignored headers never count. Otherwise any of: a comma in a sampled
    value, a 'Word-Word' header, or a normalized name ending in _id/_ids.
    The default ignore-list contains 'id', which matches every _id/_ids
    header first, so the suffix rule only applies with a custom list.
    """
    config = config or DetectionConfig()

    if column.is_primary_key or column.is_synthetic:
        return False
    if is_ignored_column(column.original_name, config.ignore_columns):
        return False

    if any(',' in v for v in sample_values if v):
        return True
    if RELATION_HEADER_PATTERN.match(column.original_name):
        return True
    return bool(KEY_SUFFIX_PATTERN.search(column.normalized_name))


def guess_target_table(column_name: str, table_names: Sequence[str]) -> Optional[str]:
    """
    Guess which table a relation column points at.

    1. Exact match of the normalized column name
    2. Column name contains a table name, or the other way round
       (first table in the given order wins)
    3. Strip a trailing _id/_ids and retry the exact match

    Returns None when nothing matches.
    """
    if column_name in table_names:
        return column_name

    for table in table_names:
        if table and (table in column_name or column_name in table):
            return table

    stripped = KEY_SUFFIX_PATTERN.sub('', column_name)
    if stripped != column_name and stripped in table_names:
        return stripped

    return None


def detect_relations(builds: Sequence[TableBuild], config: Optional[DetectionConfig] = None) -> List[Relation]:
    """
    Scan every built table for relation columns.

    Runs after all tables are built so every table name is known.
    Relations without a matching table are returned with target_table=None.
    """
    config = config or DetectionConfig()
    valid = [b for b in builds if b.is_valid]
    table_names = [b.table_name for b in valid]
    relations = []

    for build in valid:
        sample_rows = build.rows[:config.relation_sample_size]

        for column in build.schema.source_columns():
            sample = [row.raw.get(column.normalized_name, '') for row in sample_rows]
            if not is_relation_column(column, sample, config):
                continue

            target = guess_target_table(column.normalized_name, table_names)
            relation = Relation(
                source_table=build.table_name,
                source_column=column.normalized_name,
                target_table=target,
                multi_valued=any(',' in v for v in sample),
                source_header=column.original_name,
            )
            relations.append(relation)

            if target is None:
                logger.info(f"No target table for {relation.label}, values kept as text")
            else:
                logger.debug(f"Detected relation {relation.label}")

    return relations
