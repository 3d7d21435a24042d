"""Heuristic column type inference from sampled string values"""
import re
from collections import Counter
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from dateutil import parser as date_parser

from ..utils.identifiers import UUID_PATTERN, canonical_uuid


class ColumnType(Enum):
    TEXT = 'TEXT'
    BOOLEAN = 'BOOLEAN'
    UUID = 'UUID'
    INTEGER = 'INTEGER'
    DECIMAL = 'DECIMAL'
    DATE = 'DATE'
    TIMESTAMP = 'TIMESTAMP'


BOOLEAN_TRUE = {'true', '1', 'yes', 'y'}
BOOLEAN_FALSE = {'false', '0', 'no', 'n'}
BOOLEAN_VALUES = BOOLEAN_TRUE | BOOLEAN_FALSE

PATTERNS = {
    'integer': re.compile(r'^-?\d+$'),
    'decimal': re.compile(r'^-?\d+\.\d+$'),
    'date': re.compile(r'^\d{4}-\d{2}-\d{2}$'),
    'timestamp': re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}'),
}

DEFAULT_SAMPLE_SIZE = 20


def infer_value_type(value: Optional[str]) -> Optional[ColumnType]:
    """
    Classify a single raw value. Returns None for empty values (no vote).

    Checks run in a fixed order so '1' and '0' vote BOOLEAN, not INTEGER.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None

    if s.lower() in BOOLEAN_VALUES:
        return ColumnType.BOOLEAN
    if UUID_PATTERN.match(s):
        return ColumnType.UUID
    if PATTERNS['integer'].match(s):
        return ColumnType.INTEGER
    if PATTERNS['decimal'].match(s):
        return ColumnType.DECIMAL
    if PATTERNS['date'].match(s):
        return ColumnType.DATE
    if PATTERNS['timestamp'].match(s):
        return ColumnType.TIMESTAMP
    return ColumnType.TEXT


def infer_column_type(sample: Iterable[Optional[str]], sample_size: int = DEFAULT_SAMPLE_SIZE) -> ColumnType:
    """
    Majority vote over the leading `sample_size` values.

    Only the leading rows are looked at, so a column whose first rows are all
    numeric but later turn into text is typed from the numeric head.
    Ties go to the type encountered first in the sample; an all-empty
    sample is TEXT.
    """
    votes = Counter()
    for i, value in enumerate(sample):
        if i >= sample_size:
            break
        vote = infer_value_type(value)
        if vote is not None:
            votes[vote] += 1

    if not votes:
        return ColumnType.TEXT

    # Counter keeps insertion order, and max() returns the first maximal item
    return max(votes, key=votes.get)


def coerce_value(raw: Optional[str], column_type: ColumnType) -> Tuple[Any, bool]:
    """
    Convert a raw string to the column's declared type.

    Returns (value, ok). Empty input gives (None, True); a value that does not
    fit the type gives (None, False) and never raises.
    """
    if raw is None:
        return None, True
    s = str(raw).strip()
    if not s:
        return None, True

    if column_type == ColumnType.TEXT:
        return str(raw), True

    if column_type == ColumnType.BOOLEAN:
        lowered = s.lower()
        if lowered in BOOLEAN_TRUE:
            return True, True
        if lowered in BOOLEAN_FALSE:
            return False, True
        return None, False

    if column_type == ColumnType.UUID:
        if UUID_PATTERN.match(s):
            return canonical_uuid(s), True
        return None, False

    if column_type == ColumnType.INTEGER:
        if PATTERNS['integer'].match(s):
            return int(s), True
        return None, False

    if column_type == ColumnType.DECIMAL:
        # Decimal() alone would accept 'NaN' and 'Infinity'
        if not (PATTERNS['decimal'].match(s) or PATTERNS['integer'].match(s)):
            return None, False
        try:
            return Decimal(s), True
        except InvalidOperation:
            return None, False

    if column_type in (ColumnType.DATE, ColumnType.TIMESTAMP):
        try:
            parsed = date_parser.isoparse(s)
        except (ValueError, OverflowError):
            return None, False
        if column_type == ColumnType.DATE:
            return parsed.date(), True
        return parsed, True

    return str(raw), True
