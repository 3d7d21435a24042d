"""
Recursive scan of description files in an export.

Classifies how each file is named and where it sits, so the association
strategy for an unfamiliar export can be chosen before migrating.
"""
import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional

from .associator import extract_key_from_path

logger = logging.getLogger(__name__)

PREVIEW_LINES = 3


@dataclass
class ScannedFile:
    path: str                   # relative to the scan root
    file_name: str
    stem: str
    parent_dir_name: str
    table: str                  # first path component, 'root' for top-level files
    size: int
    key: Optional[str]
    name_pattern: str
    location: str
    has_frontmatter: bool
    line_count: int
    is_empty: bool
    preview: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScanReport:
    root: str
    files: List[ScannedFile] = field(default_factory=list)
    by_table: Dict[str, dict] = field(default_factory=dict)
    by_pattern: Dict[str, int] = field(default_factory=dict)
    by_location: Dict[str, int] = field(default_factory=dict)
    statistics: Dict[str, int] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'root': self.root,
            'total': len(self.files),
            'statistics': self.statistics,
            'by_table': self.by_table,
            'by_pattern': self.by_pattern,
            'by_location': self.by_location,
            'suggestions': self.suggestions,
            'files': [f.to_dict() for f in self.files],
        }


def detect_frontmatter(content: str) -> Optional[str]:
    """Return the YAML frontmatter block (without delimiters) or None."""
    lines = content.split('\n')
    if not lines or lines[0].strip() != '---':
        return None
    for i in range(1, len(lines)):
        if lines[i].strip() == '---':
            return '\n'.join(lines[1:i])
    return None


def classify_name(stem: str, key: Optional[str]) -> str:
    if key:
        if stem.lower() == key:
            return 'uuid-only'
        if key in stem.lower() or key.replace('-', '') in stem.lower():
            return 'name-uuid'
        return 'uuid-in-path'
    if re.match(r'^[a-z]', stem, re.IGNORECASE):
        return 'name-only'
    if re.match(r'^[0-9]', stem):
        return 'numeric-id'
    return 'other'


def classify_location(parent_dir_name: str, stem: str) -> str:
    if parent_dir_name == 'descriptions':
        return 'descriptions'
    if parent_dir_name == stem:
        return 'entity-folder'
    return 'other'


def scan_artifacts(root: str, extension: str = '.md') -> ScanReport:
    """
    Find every description file under root and summarize naming patterns.

    Unreadable files are logged and skipped.
    """
    root_path = Path(root)
    report = ScanReport(root=str(root_path))

    for path in sorted(root_path.rglob('*')):
        if not path.is_file() or path.suffix.lower() != extension.lower():
            continue
        try:
            content = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            continue

        relative = path.relative_to(root_path)
        key = extract_key_from_path(str(relative))
        stem = path.stem
        parent_name = path.parent.name
        report.files.append(ScannedFile(
            path=relative.as_posix(),
            file_name=path.name,
            stem=stem,
            parent_dir_name=parent_name,
            table=relative.parts[0] if len(relative.parts) > 1 else 'root',
            size=path.stat().st_size,
            key=key,
            name_pattern=classify_name(stem, key),
            location=classify_location(parent_name, stem),
            has_frontmatter=detect_frontmatter(content) is not None,
            line_count=len(content.split('\n')),
            is_empty=not content.strip(),
            preview=[line.strip() for line in content.split('\n')[:PREVIEW_LINES] if line.strip()],
        ))

    _summarize(report)
    return report


def _summarize(report: ScanReport):
    stats = {'with_key': 0, 'without_key': 0, 'with_frontmatter': 0, 'empty': 0, 'total_size': 0}

    for f in report.files:
        table = report.by_table.setdefault(f.table, {'count': 0, 'total_size': 0, 'patterns': {}})
        table['count'] += 1
        table['total_size'] += f.size
        table['patterns'][f.name_pattern] = table['patterns'].get(f.name_pattern, 0) + 1

        report.by_pattern[f.name_pattern] = report.by_pattern.get(f.name_pattern, 0) + 1
        report.by_location[f.location] = report.by_location.get(f.location, 0) + 1

        stats['with_key' if f.key else 'without_key'] += 1
        stats['with_frontmatter'] += int(f.has_frontmatter)
        stats['empty'] += int(f.is_empty)
        stats['total_size'] += f.size

    stats['average_size'] = round(stats['total_size'] / len(report.files)) if report.files else 0
    report.statistics = stats
    report.suggestions = _suggestions(report)


def _suggestions(report: ScanReport) -> List[str]:
    suggestions = []
    if report.statistics['with_key'] > report.statistics['without_key']:
        suggestions.append('Most files carry an identifier: associate by extracted key')
    else:
        suggestions.append('Few identifiers found: association will rely on file names matching row labels')
    if report.by_location.get('descriptions'):
        suggestions.append("Descriptions are grouped in 'descriptions/' folders")
    if report.by_location.get('entity-folder'):
        suggestions.append('Descriptions sit in per-entity folders: scan sub-folders')
    if report.by_pattern.get('name-uuid'):
        suggestions.append("'<name>_<uuid>' file names found: the key is taken from the end of the name")
    if report.by_pattern.get('uuid-only'):
        suggestions.append("'<uuid>' file names found: the file name is the row identifier")
    return suggestions
