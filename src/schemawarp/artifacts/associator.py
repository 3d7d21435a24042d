"""Match description files to table rows by extracted key or display name"""
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional, Sequence

from ..schema.models import NormalizedRow, TableBuild
from ..utils.identifiers import COMPACT_UUID_SUFFIX, UUID_SEARCH, canonical_uuid, expand_compact_uuid

logger = logging.getLogger(__name__)


def _key_from_name(name: str) -> Optional[str]:
    """Last free-standing dashed UUID in the name, else a trailing 32-hex run."""
    found = UUID_SEARCH.findall(name)
    if found:
        return canonical_uuid(found[-1])
    compact = COMPACT_UUID_SUFFIX.search(name)
    if compact:
        return expand_compact_uuid(compact.group(1))
    return None


def extract_key_from_path(path: str) -> Optional[str]:
    """
    Guess the row identifier an artifact belongs to from its path.

    'Tolkien_d47ec620-2190-11ef-910c-f1df4955273f.md' -> 'd47ec620-2190-11ef-910c-f1df4955273f'
    'Tolkien d47ec620219011ef910cf1df4955273f.md'     -> 'd47ec620-2190-11ef-910c-f1df4955273f'
    'd47ec620-.../notes.md'                           -> key from the parent directory
    'RandomNotes.md'                                  -> None
    """
    pure = PurePath(path)
    key = _key_from_name(pure.stem)
    if key is None and pure.parent.name:
        key = _key_from_name(pure.parent.name)
    return key


@dataclass
class Artifact:
    raw_path: str
    extracted_key: Optional[str]
    content: str

    @property
    def stem(self) -> str:
        return PurePath(self.raw_path).stem

    @classmethod
    def from_file(cls, path: str, content: str) -> 'Artifact':
        return cls(raw_path=path, extracted_key=extract_key_from_path(path), content=content)


@dataclass
class Association:
    artifact: Artifact
    matched_row_key: Optional[str] = None
    method: Optional[str] = None    # 'key' or 'label'

    @property
    def is_orphan(self) -> bool:
        return self.matched_row_key is None


@dataclass
class AssociationResult:
    table_name: str
    associations: List[Association] = field(default_factory=list)
    rows_without_artifact: List[NormalizedRow] = field(default_factory=list)

    @property
    def matched(self) -> List[Association]:
        return [a for a in self.associations if not a.is_orphan]

    @property
    def orphans(self) -> List[Artifact]:
        return [a.artifact for a in self.associations if a.is_orphan]

    def to_dict(self) -> dict:
        return {
            'table': self.table_name,
            'artifacts': len(self.associations),
            'matched_by_key': sum(1 for a in self.associations if a.method == 'key'),
            'matched_by_label': sum(1 for a in self.associations if a.method == 'label'),
            'orphans': [a.raw_path for a in self.orphans],
            'rows_without_artifact': len(self.rows_without_artifact),
        }


def associate_artifacts(artifacts: Sequence[Artifact], build: TableBuild) -> AssociationResult:
    """
    Associate each artifact with at most one row of the table.

    An extracted key found in the table's key set wins; otherwise the file
    stem is compared with each row's label, case-insensitively, first row
    wins. Orphans and rows left without an artifact are both reported.
    """
    schema = build.schema
    result = AssociationResult(table_name=schema.table_name)
    keys = build.key_set()

    by_label: Dict[str, str] = {}
    for row in build.rows:
        label = row.label(schema).lower()
        if label and label not in by_label:
            by_label[label] = row.key

    matched_keys = set()
    for artifact in artifacts:
        association = Association(artifact=artifact)
        if artifact.extracted_key and artifact.extracted_key in keys:
            association.matched_row_key = artifact.extracted_key
            association.method = 'key'
        else:
            key = by_label.get(artifact.stem.strip().lower())
            if key is not None:
                association.matched_row_key = key
                association.method = 'label'

        if association.is_orphan:
            logger.debug(f"Orphan artifact in '{schema.table_name}': {artifact.raw_path}")
        else:
            matched_keys.add(association.matched_row_key)
        result.associations.append(association)

    result.rows_without_artifact = [row for row in build.rows if row.key not in matched_keys]

    if result.orphans:
        logger.info(f"'{schema.table_name}': {len(result.orphans)} of {len(artifacts)} artifacts unmatched")
    return result
