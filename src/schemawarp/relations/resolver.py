"""
Relation resolver - turns relation cell values into links between row keys.

Cells hold comma-separated display names. Each name is matched against the
target table's label column (case-insensitive, first row wins) and a link is
kept only when both row keys exist in their table's key set.
"""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..pipeline.config import DetectionConfig
from ..schema.models import TableBuild
from ..utils.identifiers import is_uuid
from ..utils.sanitize import NameRegistry
from .models import Link, Relation, RelationOutcome, RelationResolution, UnresolvedReason, UnresolvedReference

logger = logging.getLogger(__name__)


def parse_relation_list(value: Optional[str]) -> List[str]:
    """Split a cell on commas, trim tokens, drop empties."""
    if not value:
        return []
    return [token.strip() for token in value.split(',') if token.strip()]


def build_label_index(build: TableBuild) -> Tuple[Dict[str, str], Set[str]]:
    """
    Map lowercased display name -> key of the first row carrying it.

    Returns the index and the set of names shared by more than one row.
    """
    index: Dict[str, str] = {}
    ambiguous: Set[str] = set()
    schema = build.schema
    if not schema.label_column:
        return index, ambiguous

    for row in build.rows:
        label = row.label(schema).lower()
        if not label:
            continue
        if label in index:
            ambiguous.add(label)
        else:
            index[label] = row.key
    return index, ambiguous


def resolve_relations(
    relations: Sequence[Relation],
    builds: Sequence[TableBuild],
    config: Optional[DetectionConfig] = None,
) -> RelationResolution:
    """
    Resolve every detected relation against the complete set of built tables.

    Must run after every table has been built: both key sets are needed.
    Unresolved references are collected per relation and never raise.
    """
    config = config or DetectionConfig()
    by_name = {b.table_name: b for b in builds if b.is_valid}
    key_sets = {name: b.key_set() for name, b in by_name.items()}
    label_indexes = {}

    # Junction names share the table namespace
    junction_names = NameRegistry(reserved=by_name.keys())
    junctions: Dict[Tuple[str, str], str] = {}

    resolution = RelationResolution()

    for relation in relations:
        outcome = RelationOutcome(relation=relation)
        resolution.outcomes.append(outcome)

        if relation.target_table is None:
            outcome.skipped_reason = UnresolvedReason.TARGET_TABLE_UNKNOWN
            outcome.unresolved.append(UnresolvedReference(
                relation, None, relation.source_header, UnresolvedReason.TARGET_TABLE_UNKNOWN,
            ))
            continue

        source = by_name.get(relation.source_table)
        target = by_name.get(relation.target_table)
        if source is None or target is None:
            outcome.skipped_reason = UnresolvedReason.TARGET_TABLE_UNKNOWN
            outcome.unresolved.append(UnresolvedReference(
                relation, None, relation.source_header, UnresolvedReason.TARGET_TABLE_UNKNOWN,
            ))
            continue

        sample = source.rows[:config.relation_sample_size]
        if not any(row.raw.get(relation.source_column, '').strip() for row in sample):
            outcome.skipped_reason = 'no-values'
            logger.debug(f"Skipping {relation.label}: no values in sampled rows")
            continue

        pair = outcome.tables
        if pair not in junctions:
            junctions[pair] = junction_names.register(f"{pair[0]}_{pair[1]}")
        outcome.junction_table = junctions[pair]

        if relation.target_table not in label_indexes:
            label_indexes[relation.target_table] = build_label_index(target)
        index, ambiguous = label_indexes[relation.target_table]

        _resolve_outcome(outcome, source, index, ambiguous,
                         key_sets[relation.source_table], key_sets[relation.target_table])

        if outcome.ambiguous_tokens:
            logger.warning(
                f"{relation.label}: {outcome.ambiguous_tokens} value(s) matched several "
                f"'{relation.target_table}' rows, first row used"
            )
        logger.info(
            f"{relation.label}: {len(outcome.links)} links, {len(outcome.unresolved)} unresolved"
        )

    return resolution


def _resolve_outcome(
    outcome: RelationOutcome,
    source: TableBuild,
    index: Dict[str, str],
    ambiguous: Set[str],
    source_keys: Set[str],
    target_keys: Set[str],
):
    relation = outcome.relation
    seen: Set[Tuple[str, str]] = set()

    for row in source.rows:
        tokens = parse_relation_list(row.raw.get(relation.source_column, ''))
        if not tokens:
            continue

        source_key = row.key
        if not is_uuid(source_key) or source_key not in source_keys:
            for token in tokens:
                outcome.unresolved.append(UnresolvedReference(
                    relation, source_key, token, UnresolvedReason.SOURCE_ID_INVALID, row.row_number,
                ))
            continue

        for token in tokens:
            lowered = token.lower()
            target_key = index.get(lowered)
            if target_key is None:
                outcome.unresolved.append(UnresolvedReference(
                    relation, source_key, token, UnresolvedReason.DISPLAY_NAME_NOT_FOUND, row.row_number,
                ))
                continue

            if lowered in ambiguous:
                outcome.ambiguous_tokens += 1

            if not is_uuid(target_key) or target_key not in target_keys:
                outcome.unresolved.append(UnresolvedReference(
                    relation, source_key, token, UnresolvedReason.TARGET_ID_INVALID, row.row_number,
                ))
                continue

            if (source_key, target_key) in seen:
                continue
            seen.add((source_key, target_key))
            outcome.links.append(Link(relation, source_key, target_key))
