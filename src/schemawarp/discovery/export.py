"""Export folder traversal"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..artifacts.associator import Artifact
from ..loader.csv_reader import read_csv_table
from ..pipeline.config import MigrationConfig
from ..schema.models import RawTable

logger = logging.getLogger(__name__)


class SourceNotFoundError(FileNotFoundError):
    """The export root does not exist or is not a directory."""


@dataclass
class SourceTable:
    """One table folder: its parsed CSV and the description files around it."""
    folder: str
    table: RawTable
    artifacts: List[Artifact] = field(default_factory=list)


@dataclass
class ExportSnapshot:
    root: str
    tables: List[SourceTable] = field(default_factory=list)
    skipped_folders: List[str] = field(default_factory=list)   # folders without a CSV

    @property
    def artifact_count(self) -> int:
        return sum(len(t.artifacts) for t in self.tables)


def discover_export(root: str, config: Optional[MigrationConfig] = None) -> ExportSnapshot:
    """
    Read every table folder of an export.

    Each sub-directory of root is a table named after the folder. Its first
    CSV (by name) holds the rows; every description file anywhere below the
    folder becomes an artifact of that table.

    Raises:
        SourceNotFoundError: root is missing or not a directory
    """
    config = config or MigrationConfig()
    root_path = Path(root)
    if not root_path.is_dir():
        raise SourceNotFoundError(f"Export folder not found: {root}")

    snapshot = ExportSnapshot(root=str(root_path))
    extension = config.artifact_extension.lower()

    for folder in sorted(p for p in root_path.iterdir() if p.is_dir()):
        csv_files = sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == '.csv')
        if not csv_files:
            logger.info(f"No CSV in {folder.name}, skipping")
            snapshot.skipped_folders.append(folder.name)
            continue
        if len(csv_files) > 1:
            logger.warning(f"{folder.name}: {len(csv_files)} CSV files, using {csv_files[0].name}")

        table = read_csv_table(str(csv_files[0]), name=folder.name)
        source = SourceTable(folder=folder.name, table=table)

        for path in sorted(folder.rglob('*')):
            if path.is_file() and path.suffix.lower() == extension:
                try:
                    content = path.read_text(encoding='utf-8')
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Could not read {path}: {e}")
                    continue
                source.artifacts.append(Artifact.from_file(str(path.relative_to(folder)), content))

        snapshot.tables.append(source)

    logger.info(f"Discovered {len(snapshot.tables)} tables and {snapshot.artifact_count} artifacts in {root}")
    return snapshot
