"""Name sanitization for PostgreSQL identifiers"""
import re
import unicodedata
from typing import Iterable, Optional, Set

MAX_IDENTIFIER_LENGTH = 63

# PostgreSQL reserved keywords - identifiers matching these get a '_' prefix
RESERVED_KEYWORDS = frozenset({
    'all', 'analyse', 'analyze', 'and', 'any', 'array', 'as', 'asc', 'asymmetric',
    'authorization', 'binary', 'both', 'case', 'cast', 'check', 'collate', 'collation',
    'column', 'concurrently', 'constraint', 'create', 'cross', 'current_catalog',
    'current_date', 'current_role', 'current_schema', 'current_timestamp', 'current_user',
    'default', 'deferrable', 'desc', 'distinct', 'do', 'else', 'end', 'except', 'false',
    'fetch', 'for', 'foreign', 'freeze', 'from', 'full', 'grant', 'group', 'having',
    'ilike', 'in', 'initially', 'inner', 'intersect', 'into', 'is', 'isnull', 'join',
    'lateral', 'leading', 'left', 'like', 'limit', 'localtime', 'localtimestamp',
    'natural', 'not', 'notnull', 'null', 'offset', 'on', 'only', 'or', 'order', 'outer',
    'overlaps', 'placing', 'primary', 'references', 'returning', 'right', 'select',
    'session_user', 'similar', 'some', 'symmetric', 'table', 'tablesample', 'then',
    'to', 'trailing', 'true', 'union', 'unique', 'user', 'using', 'variadic', 'verbose',
    'when', 'where', 'window', 'with',
})


def strip_accents(text: str) -> str:
    """Decompose unicode and drop combining marks: 'intérêt' -> 'interet'."""
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def sanitize_name(name: Optional[str]) -> str:
    """
    Convert a display name to a PostgreSQL-safe identifier.

    - Strip diacritics
    - Apostrophes/backticks become underscores
    - Replace whitespace, hyphens, dots, slashes with underscores
    - Lowercase, drop anything outside [a-z0-9_]
    - Remove consecutive underscores, strip leading/trailing underscores
    - Prefix '_' when starting with a digit or matching a reserved keyword
    - Truncate to 63 chars (PostgreSQL limit)

    Idempotent: sanitize_name(sanitize_name(x)) == sanitize_name(x).
    """
    if not name:
        return 'unnamed'

    result = strip_accents(str(name))

    # Apostrophes (straight and typographic) and backticks
    result = re.sub(r"['‘’`]", '_', result)

    # Replace common separators with underscore
    result = re.sub(r'[\s\-./]+', '_', result)

    result = result.lower()

    # Remove any remaining non-alphanumeric (except underscore)
    result = re.sub(r'[^a-z0-9_]', '', result)

    # Collapse multiple underscores
    result = re.sub(r'_+', '_', result)

    # Strip leading/trailing underscores
    result = result.strip('_')

    if not result:
        return 'unnamed'

    if result[0].isdigit():
        result = '_' + result
    elif result in RESERVED_KEYWORDS:
        result = '_' + result

    # Truncate to PostgreSQL limit
    if len(result) > MAX_IDENTIFIER_LENGTH:
        result = result[:MAX_IDENTIFIER_LENGTH].rstrip('_')

    return result


def with_suffix(name: str, suffix: str) -> str:
    """Append a suffix, trimming the base so the result fits in 63 chars."""
    return f"{name[:MAX_IDENTIFIER_LENGTH - len(suffix)].rstrip('_')}{suffix}"


def unique_name(name: Optional[str], used: Set[str]) -> str:
    """
    Sanitize a name and disambiguate it against names already in `used`.

    Collisions get a numeric suffix ("title", "title_2", "title_3") truncated so
    the result still fits in 63 chars. The returned name is added to `used`.
    """
    base = sanitize_name(name)
    candidate = base
    counter = 1

    while candidate in used:
        counter += 1
        candidate = with_suffix(base, f"_{counter}")

    used.add(candidate)
    return candidate


class NameRegistry:
    """Tracks identifiers handed out within one namespace (a table or a schema)."""

    def __init__(self, reserved: Iterable[str] = ()):
        self._used: Set[str] = set(reserved)
        self.collisions = {}  # sanitized base -> list of names issued after a clash

    def register(self, name: Optional[str]) -> str:
        base = sanitize_name(name)
        issued = unique_name(name, self._used)
        if issued != base:
            self.collisions.setdefault(base, []).append(issued)
        return issued

    def __contains__(self, name: str) -> bool:
        return name in self._used

    @property
    def names(self) -> Set[str]:
        return set(self._used)
