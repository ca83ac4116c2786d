"""
Configuration classes for duplicate removal on Delta Lake tables.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class DedupMode(str, Enum):
    """Duplicate removal policy."""

    # Delete every member of every duplicated key group.
    REMOVE_ALL = "remove_all"
    # Keep the row with the smallest primary key in each group.
    KEEP_ONE = "keep_one"


@dataclass
class DedupConfig:
    """Options shared by the duplicate resolver operations.

    Args:
        target_alias: Alias of the live table in the merge predicate.
        source_alias: Alias of the computed duplicate set in the merge predicate.
        validate_primary_key: Check that the primary key column exists before
            computing duplicates in keep-one mode.
        dry_run: Compute the duplicate set but do not issue the delete.
        commit_properties: Passed through to ``DeltaTable.merge``.
        post_commithook_properties: Passed through to ``DeltaTable.merge``.
        storage_options: Cloud storage options used when opening a table by
            path. Merged over auto-detected credentials.
    """

    target_alias: str = "old"
    source_alias: str = "new"
    validate_primary_key: bool = True
    dry_run: bool = False
    commit_properties: Optional[Any] = None
    post_commithook_properties: Optional[Any] = None
    storage_options: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.target_alias or not self.source_alias:
            raise ValueError("Merge aliases must be non-empty strings")
        if self.target_alias == self.source_alias:
            raise ValueError(
                f"target_alias and source_alias must differ, got '{self.target_alias}' for both"
            )

    def merge_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``DeltaTable.merge`` that are set."""
        kwargs = {
            "source_alias": self.source_alias,
            "target_alias": self.target_alias,
        }
        if self.commit_properties is not None:
            kwargs["commit_properties"] = self.commit_properties
        if self.post_commithook_properties is not None:
            kwargs["post_commithook_properties"] = self.post_commithook_properties
        return kwargs
