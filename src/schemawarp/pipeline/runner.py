"""
Migration runner - two-phase orchestration of the inference engine.

Phase 1 builds every table (schema, keys, normalized rows).
Phase 2 detects and resolves relations and associates artifacts, using the
complete per-table state from phase 1.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..artifacts.associator import Artifact, AssociationResult, associate_artifacts
from ..discovery.export import ExportSnapshot, SourceNotFoundError, discover_export
from ..relations.detector import detect_relations
from ..relations.models import Relation, RelationResolution
from ..relations.resolver import resolve_relations
from ..schema.builder import build_schema
from ..schema.models import RawTable, RowIssue, TableBuild
from ..utils.sanitize import NameRegistry
from .config import MigrationConfig

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """Everything one run produces, best-effort complete."""
    config: MigrationConfig
    builds: List[TableBuild] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)
    resolution: RelationResolution = field(default_factory=RelationResolution)
    associations: Dict[str, AssociationResult] = field(default_factory=dict)  # by table name
    snapshot: Optional[ExportSnapshot] = None

    @property
    def valid_builds(self) -> List[TableBuild]:
        return [b for b in self.builds if b.is_valid]

    @property
    def skipped_builds(self) -> List[TableBuild]:
        return [b for b in self.builds if not b.is_valid]

    @property
    def issues(self) -> List[RowIssue]:
        return [i for b in self.builds for i in b.issues]

    def issue_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.kind] = counts.get(issue.kind, 0) + 1
        return counts

    def get_build(self, table_name: str) -> Optional[TableBuild]:
        for b in self.valid_builds:
            if b.table_name == table_name:
                return b
        return None


def run_migration(
    tables: Sequence[RawTable],
    config: Optional[MigrationConfig] = None,
    artifacts: Optional[Mapping[str, Sequence[Artifact]]] = None,
) -> MigrationResult:
    """
    Run the inference engine over already-read tables.

    Args:
        tables: One RawTable per source table
        config: Migration settings; defaults apply when omitted
        artifacts: Description files keyed by the source table's display name

    Returns:
        MigrationResult; data problems are reported in it, never raised
    """
    config = config or MigrationConfig()
    artifacts = artifacts or {}
    result = MigrationResult(config=config)

    # Phase 1: every table fully built before anything looks across tables
    table_names = NameRegistry()
    for table in tables:
        result.builds.append(build_schema(table, config.detection, table_names))

    for build in result.skipped_builds:
        logger.warning(f"Table '{build.source_name}' skipped: {build.error_message}")

    # Phase 2
    result.relations = detect_relations(result.builds, config.detection)
    result.resolution = resolve_relations(result.relations, result.builds, config.detection)

    for build in result.valid_builds:
        result.associations[build.table_name] = associate_artifacts(
            artifacts.get(build.source_name, []), build,
        )

    logger.info(
        f"Migration run: {len(result.valid_builds)} tables built, {len(result.skipped_builds)} skipped, "
        f"{len(result.relations)} relations, {len(result.resolution.links)} links"
    )
    return result


def migrate_export(root: Optional[str] = None, config: Optional[MigrationConfig] = None) -> MigrationResult:
    """
    Discover an export folder and run the engine over it.

    Raises:
        SourceNotFoundError: the export root is missing (nothing is produced)
    """
    config = config or MigrationConfig()
    root = root or config.source_dir
    if not root:
        raise SourceNotFoundError('No export folder given (set source_dir or SCHEMAWARP_SOURCE_DIR)')
    snapshot = discover_export(root, config)

    result = run_migration(
        [source.table for source in snapshot.tables],
        config,
        {source.table.name: source.artifacts for source in snapshot.tables},
    )
    result.snapshot = snapshot
    return result
