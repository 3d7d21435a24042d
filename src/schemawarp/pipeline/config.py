"""Migration configuration dataclasses"""
import json
import os
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Columns that are never treated as relations (substring match on the lowercased header).
# 'id' also matches every _id/_ids header.
DEFAULT_IGNORE_COLUMNS = [
    # System columns
    'id', 'public_id', 'name', 'creation_date', 'modification_date',
    'created_by_id', 'created_by_name', 'created_by',
    # Plain scalar data
    'age', 'score', 'date', 'time', 'year', 'month', 'day',
    'count', 'total', 'sum', 'average', 'min', 'max',
    # Free text
    'description', 'comment', 'note', 'text', 'content', 'body',
]

# Header fragments that identify the display-name column, best first
DEFAULT_LABEL_COLUMNS = ['name', 'title', 'libelle', 'nom']


@dataclass
class DetectionConfig:
    """Sampling sizes and heuristics for type and relation detection"""
    type_sample_size: int = 20          # leading rows voted on per column
    relation_sample_size: int = 20      # leading rows scanned for commas
    ignore_columns: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_COLUMNS))
    label_columns: List[str] = field(default_factory=lambda: list(DEFAULT_LABEL_COLUMNS))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'DetectionConfig':
        return cls(
            type_sample_size=data.get('type_sample_size', 20),
            relation_sample_size=data.get('relation_sample_size', 20),
            ignore_columns=data.get('ignore_columns', list(DEFAULT_IGNORE_COLUMNS)),
            label_columns=data.get('label_columns', list(DEFAULT_LABEL_COLUMNS)),
        )


@dataclass
class MigrationConfig:
    """Complete migration configuration, passed explicitly to every component"""
    source_dir: Optional[str] = None    # export root: one sub-folder per table
    schema: str = 'psm_root'            # target PostgreSQL schema
    batch_size: int = 100               # rows per INSERT statement
    output_dir: str = './output'
    drop_existing_tables: bool = True
    add_comments: bool = True
    create_indexes: bool = False
    artifact_extension: str = '.md'
    detection: DetectionConfig = field(default_factory=DetectionConfig)

    def to_dict(self) -> dict:
        return {
            'source_dir': self.source_dir,
            'schema': self.schema,
            'batch_size': self.batch_size,
            'output_dir': self.output_dir,
            'drop_existing_tables': self.drop_existing_tables,
            'add_comments': self.add_comments,
            'create_indexes': self.create_indexes,
            'artifact_extension': self.artifact_extension,
            'detection': self.detection.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> 'MigrationConfig':
        return cls(
            source_dir=data.get('source_dir'),
            schema=data.get('schema', 'psm_root'),
            batch_size=data.get('batch_size', 100),
            output_dir=data.get('output_dir', './output'),
            drop_existing_tables=data.get('drop_existing_tables', True),
            add_comments=data.get('add_comments', True),
            create_indexes=data.get('create_indexes', False),
            artifact_extension=data.get('artifact_extension', '.md'),
            detection=DetectionConfig.from_dict(data.get('detection', {})),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'MigrationConfig':
        return cls.from_dict(json.loads(json_str))

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = []
        if not self.source_dir:
            errors.append('source_dir is not set')
        if not self.schema or not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', self.schema):
            errors.append(f"schema '{self.schema}' is not a valid PostgreSQL identifier")
        if not 1 <= self.batch_size <= 10000:
            errors.append(f"batch_size must be between 1 and 10000 (got {self.batch_size})")
        if self.detection.type_sample_size < 1:
            errors.append('detection.type_sample_size must be positive')
        if self.detection.relation_sample_size < 1:
            errors.append('detection.relation_sample_size must be positive')
        return errors


def load_config(path: Optional[str] = None) -> MigrationConfig:
    """
    Load configuration from an optional JSON file, then apply environment overrides.

    Environment (a .env file is honoured):
        SCHEMAWARP_SOURCE_DIR, SCHEMAWARP_SCHEMA, SCHEMAWARP_BATCH_SIZE, SCHEMAWARP_OUTPUT_DIR
    """
    load_dotenv()

    if path:
        config = MigrationConfig.from_json(Path(path).read_text(encoding='utf-8'))
    else:
        config = MigrationConfig()

    if os.getenv('SCHEMAWARP_SOURCE_DIR'):
        config.source_dir = os.getenv('SCHEMAWARP_SOURCE_DIR')
    if os.getenv('SCHEMAWARP_SCHEMA'):
        config.schema = os.getenv('SCHEMAWARP_SCHEMA')
    if os.getenv('SCHEMAWARP_BATCH_SIZE'):
        config.batch_size = int(os.getenv('SCHEMAWARP_BATCH_SIZE'))
    if os.getenv('SCHEMAWARP_OUTPUT_DIR'):
        config.output_dir = os.getenv('SCHEMAWARP_OUTPUT_DIR')

    return config
