"""Migration configuration and orchestration"""
from .config import MigrationConfig, DetectionConfig, load_config, DEFAULT_IGNORE_COLUMNS, DEFAULT_LABEL_COLUMNS
