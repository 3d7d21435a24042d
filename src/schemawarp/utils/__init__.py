"""Utility functions"""
from .sanitize import sanitize_name, unique_name, with_suffix, strip_accents, NameRegistry, RESERVED_KEYWORDS
from .identifiers import is_uuid, canonical_uuid, expand_compact_uuid, new_uuid, UUID_PATTERN
