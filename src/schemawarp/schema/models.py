"""Schema and row dataclasses produced by the schema builder"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..metadata.inference import ColumnType


class IssueKind:
    INVALID_KEY = 'invalid-key'
    DUPLICATE_KEY = 'duplicate-key'
    COERCION_FALLBACK = 'coercion-fallback'
    SPECIAL_CHARACTERS = 'special-characters'
    MISSING_LABEL = 'missing-label'


@dataclass(frozen=True)
class RawTable:
    """One source table as read from the export: display name, ordered headers, raw rows."""
    name: str
    headers: List[str]
    rows: List[Dict[str, str]]
    source_path: Optional[str] = None
    malformed_lines: int = 0
    read_error: Optional[str] = None    # set when the file could not be parsed


@dataclass
class ColumnSchema:
    original_name: str
    normalized_name: str
    inferred_type: ColumnType = ColumnType.TEXT
    is_primary_key: bool = False
    is_synthetic: bool = False      # added by the builder, not present in the source
    default: Optional[str] = None   # SQL default expression for generated columns

    @property
    def nullable(self) -> bool:
        return not self.is_primary_key


@dataclass
class TableSchema:
    table_name: str
    source_name: str
    columns: List[ColumnSchema] = field(default_factory=list)
    has_natural_key: bool = False
    label_column: Optional[str] = None          # normalized name of the display-name column
    original_key_column: Optional[str] = None   # audit column holding substituted raw ids

    @property
    def primary_key(self) -> Optional[ColumnSchema]:
        for col in self.columns:
            if col.is_primary_key:
                return col
        return None

    def get_column(self, normalized_name: str) -> Optional[ColumnSchema]:
        for col in self.columns:
            if col.normalized_name == normalized_name:
                return col
        return None

    def source_columns(self) -> List[ColumnSchema]:
        return [c for c in self.columns if not c.is_synthetic]


@dataclass
class NormalizedRow:
    """A typed row keyed by normalized column name, with its raw values kept for audit."""
    table_name: str
    row_number: int                 # 1-based data row index in the source
    values: Dict[str, Any]
    raw: Dict[str, str] = field(default_factory=dict)
    original_key_value: Optional[str] = None
    substituted: bool = False

    @property
    def key(self) -> str:
        return self.values['id']

    def label(self, schema: TableSchema) -> str:
        if not schema.label_column:
            return ''
        return (self.raw.get(schema.label_column) or '').strip()


@dataclass
class RowIssue:
    table_name: str
    row_number: int
    column: Optional[str]
    kind: str
    value: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'table': self.table_name,
            'row': self.row_number,
            'column': self.column,
            'kind': self.kind,
            'value': self.value,
        }


@dataclass
class TableBuild:
    """Builder output for one table. error_message is set when the table was skipped."""
    source_name: str
    schema: Optional[TableSchema]
    rows: List[NormalizedRow] = field(default_factory=list)
    issues: List[RowIssue] = field(default_factory=list)
    error_message: Optional[str] = None
    source_path: Optional[str] = None
    malformed_lines: int = 0

    @property
    def is_valid(self) -> bool:
        return self.schema is not None and self.error_message is None

    @property
    def table_name(self) -> Optional[str]:
        return self.schema.table_name if self.schema else None

    def key_set(self) -> set:
        return {row.key for row in self.rows}

    def issues_of(self, kind: str) -> List[RowIssue]:
        return [i for i in self.issues if i.kind == kind]

    @property
    def substituted_count(self) -> int:
        return sum(1 for row in self.rows if row.substituted)
