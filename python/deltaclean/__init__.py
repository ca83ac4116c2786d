"""
Maintenance helpers for Delta Lake tables.

This package provides:
- Latest committed version lookup
- Duplicate removal keyed on a set of columns, with every duplicated row
  removed or one survivor kept per key
- Dry-run computation of the duplicate set
- Cloud storage credential detection (S3, Azure) when opening by path
"""

# Configuration classes
from .config import DedupConfig, DedupMode

# Errors
from .errors import (
    DeltaCleanError,
    InvalidArgumentError,
    NotFoundError,
    SchemaMismatchError,
)

# Table and dataset handles
from .dataset import ArrowDataset
from .table import DeltaLakeTable

# Utilities and table operations
from .utilities import (
    AWSUtilities,
    AzureUtilities,
    latest_version,
    open_delta_table,
    try_get_deltatable,
    validate_path,
)

# Duplicate removal
from .resolver import (
    DedupResult,
    DuplicateResolver,
    DuplicateSet,
    build_match_condition,
    find_duplicates,
    remove_all_duplicates,
    remove_duplicates_keep_one,
)

__all__ = [
    # Configuration classes
    "DedupConfig",
    # Enums
    "DedupMode",
    # Errors
    "DeltaCleanError",
    "InvalidArgumentError",
    "NotFoundError",
    "SchemaMismatchError",
    # Handles
    "ArrowDataset",
    "DeltaLakeTable",
    # Cloud utilities
    "AWSUtilities",
    "AzureUtilities",
    # Helper utilities
    "open_delta_table",
    "try_get_deltatable",
    "validate_path",
    # Table operations
    "latest_version",
    # Duplicate removal
    "DedupResult",
    "DuplicateResolver",
    "DuplicateSet",
    "build_match_condition",
    "find_duplicates",
    "remove_all_duplicates",
    "remove_duplicates_keep_one",
]
