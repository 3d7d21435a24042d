"""Relation detection and resolution across built tables"""
from .models import (
    Relation,
    Link,
    UnresolvedReference,
    UnresolvedReason,
    RelationOutcome,
    RelationResolution,
    Junction,
    junction_columns,
)
from .detector import detect_relations, guess_target_table, is_relation_column, is_ignored_column
from .resolver import resolve_relations, parse_relation_list, build_label_index
