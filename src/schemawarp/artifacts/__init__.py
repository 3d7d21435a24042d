"""Description file association and scanning"""
from .associator import Artifact, Association, AssociationResult, associate_artifacts, extract_key_from_path
from .scanner import ScanReport, ScannedFile, scan_artifacts, detect_frontmatter, classify_name
