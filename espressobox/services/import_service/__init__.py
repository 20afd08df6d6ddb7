"""Import service package for restoring the diary from an export document."""

from .parsers import detect_format, parse_export_document
from .processor import (
    ImportMode,
    ImportSummary,
    commit_import,
    find_conflicts,
    import_data,
)
from .staging import StagedImport, UnresolvedReference, stage_import

__all__ = [
    # Parsers
    "detect_format",
    "parse_export_document",
    # Staging
    "StagedImport",
    "UnresolvedReference",
    "stage_import",
    # Processor
    "ImportMode",
    "ImportSummary",
    "commit_import",
    "find_conflicts",
    "import_data",
]
