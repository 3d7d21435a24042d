"""UUID helpers shared by the schema builder, resolver and artifact matcher"""
import re
import uuid
from typing import Optional

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.IGNORECASE
)

# Variant used when scanning file names: the key must be bounded by a
# separator or by the ends of the name
UUID_SEARCH = re.compile(
    r'(?<![0-9a-z])[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(?![0-9a-z])', re.IGNORECASE
)

COMPACT_UUID_SUFFIX = re.compile(r'(?<![0-9a-z])([0-9a-f]{32})$', re.IGNORECASE)


def is_uuid(value: Optional[str]) -> bool:
    """True if value is a canonical 8-4-4-4-12 hex UUID string."""
    if not value:
        return False
    return bool(UUID_PATTERN.match(value.strip()))


def canonical_uuid(value: str) -> str:
    """Lowercase, trimmed form used for all key comparisons."""
    return value.strip().lower()


def expand_compact_uuid(compact: str) -> str:
    """Reformat 32 hex chars into dashed form: 'd47ec620219011ef...' -> 'd47ec620-2190-11ef-...'"""
    c = compact.lower()
    return f"{c[0:8]}-{c[8:12]}-{c[12:16]}-{c[16:20]}-{c[20:32]}"


def new_uuid() -> str:
    """Fresh random v4 identifier used for substituted and synthetic keys."""
    return str(uuid.uuid4())
