"""Relation, link and resolution outcome dataclasses"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..utils.sanitize import with_suffix


class UnresolvedReason:
    SOURCE_ID_INVALID = 'source-id-invalid'
    TARGET_ID_INVALID = 'target-id-invalid'
    DISPLAY_NAME_NOT_FOUND = 'display-name-not-found'
    TARGET_TABLE_UNKNOWN = 'target-table-unknown'


@dataclass(frozen=True)
class Relation:
    """A column detected as a reference to another table."""
    source_table: str
    source_column: str              # normalized column name
    target_table: Optional[str]     # None: no table matched, values stay as text
    multi_valued: bool = False
    source_header: Optional[str] = None

    @property
    def label(self) -> str:
        target = self.target_table or '?'
        return f"{self.source_table}.{self.source_column} -> {target}"

    def to_dict(self) -> dict:
        return {
            'source_table': self.source_table,
            'source_column': self.source_column,
            'source_header': self.source_header,
            'target_table': self.target_table,
            'multi_valued': self.multi_valued,
        }


@dataclass(frozen=True)
class Link:
    relation: Relation
    source_row_key: str
    target_row_key: str


@dataclass(frozen=True)
class UnresolvedReference:
    relation: Relation
    source_row_key: Optional[str]
    token: Optional[str]
    reason: str
    row_number: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'relation': self.relation.label,
            'row': self.row_number,
            'source_row_key': self.source_row_key,
            'token': self.token,
            'reason': self.reason,
        }


def junction_columns(first_table: str, second_table: str) -> Tuple[str, str]:
    """Foreign key column names of the junction between two (sorted) tables."""
    first = with_suffix(first_table, '_id')
    if first_table == second_table:
        return first, with_suffix(f"related_{second_table}", '_id')
    second = with_suffix(second_table, '_id')
    if second == first:
        second = with_suffix(second_table, '_id_2')
    return first, second


@dataclass
class RelationOutcome:
    """Resolution result for one relation. Kept even when it produced no links."""
    relation: Relation
    junction_table: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    unresolved: List[UnresolvedReference] = field(default_factory=list)
    ambiguous_tokens: int = 0
    skipped_reason: Optional[str] = None

    @property
    def tables(self) -> Optional[Tuple[str, str]]:
        """The two linked tables in junction (alphabetical) order."""
        if self.relation.target_table is None:
            return None
        return tuple(sorted((self.relation.source_table, self.relation.target_table)))

    def junction_pairs(self) -> List[Tuple[str, str]]:
        """Link keys oriented to the junction's column order."""
        if self.tables is None:
            return []
        source_first = self.tables[0] == self.relation.source_table
        return [
            (link.source_row_key, link.target_row_key) if source_first
            else (link.target_row_key, link.source_row_key)
            for link in self.links
        ]

    def unresolved_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for ref in self.unresolved:
            counts[ref.reason] = counts.get(ref.reason, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            **self.relation.to_dict(),
            'junction_table': self.junction_table,
            'links': len(self.links),
            'unresolved': self.unresolved_counts(),
            'ambiguous_tokens': self.ambiguous_tokens,
            'skipped_reason': self.skipped_reason,
        }


@dataclass
class Junction:
    """Storage table shared by every relation between the same two tables."""
    name: str
    tables: Tuple[str, str]
    columns: Tuple[str, str]
    relations: List[Relation] = field(default_factory=list)
    pairs: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class RelationResolution:
    outcomes: List[RelationOutcome] = field(default_factory=list)

    @property
    def links(self) -> List[Link]:
        return [link for o in self.outcomes for link in o.links]

    @property
    def unresolved(self) -> List[UnresolvedReference]:
        return [ref for o in self.outcomes for ref in o.unresolved]

    def unresolved_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for ref in self.unresolved:
            counts[ref.reason] = counts.get(ref.reason, 0) + 1
        return counts

    def junctions(self) -> List[Junction]:
        """Group outcomes by junction table, pairs deduplicated across relations."""
        by_name: Dict[str, Junction] = {}
        for outcome in self.outcomes:
            if outcome.junction_table is None:
                continue
            junction = by_name.get(outcome.junction_table)
            if junction is None:
                tables = outcome.tables
                junction = Junction(outcome.junction_table, tables, junction_columns(*tables))
                by_name[junction.name] = junction
            junction.relations.append(outcome.relation)
            seen = set(junction.pairs)
            for pair in outcome.junction_pairs():
                if pair not in seen:
                    seen.add(pair)
                    junction.pairs.append(pair)
        return list(by_name.values())
