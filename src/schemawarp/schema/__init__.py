"""Table schemas and normalized rows built from raw export tables"""
from .models import (
    RawTable,
    ColumnSchema,
    TableSchema,
    NormalizedRow,
    RowIssue,
    TableBuild,
    IssueKind,
)
from .builder import build_schema, find_label_column
