"""
Transactional table handle over a ``deltalake.DeltaTable``.

Versioning, snapshot isolation and the atomic merge commit are provided by
delta-rs. This wrapper only narrows its API to what the duplicate resolver
consumes: history, schema, a snapshot scan, and a merge that deletes matched
rows.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from deltaclean.config import DedupConfig
from deltaclean.dataset import ArrowDataset

if TYPE_CHECKING:
    from deltalake import DeltaTable

logger = logging.getLogger(__name__)


class DeltaLakeTable:
    """A Delta Lake table opened through delta-rs."""

    def __init__(self, delta_table: "DeltaTable"):
        self._delta_table = delta_table

    @classmethod
    def for_path(
        cls, path: str, storage_options: Optional[Dict[str, str]] = None
    ) -> "DeltaLakeTable":
        from deltalake import DeltaTable

        dt_kwargs = {}
        if storage_options:
            dt_kwargs["storage_options"] = storage_options
        return cls(DeltaTable(path, **dt_kwargs))

    @property
    def delta_table(self) -> "DeltaTable":
        return self._delta_table

    @property
    def path(self) -> str:
        return self._delta_table.table_uri

    def version(self) -> int:
        """Version of the snapshot this handle currently points at."""
        return self._delta_table.version()

    def history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Commit metadata, most recent first. Each entry has a ``version`` key."""
        return self._delta_table.history(limit)

    def column_names(self) -> List[str]:
        return [field.name for field in self._delta_table.schema().fields]

    def to_dataset(self, columns: Optional[Sequence[str]] = None) -> ArrowDataset:
        """Scan the current snapshot."""
        scan_kwargs = {}
        if columns is not None:
            scan_kwargs["columns"] = list(columns)
        return ArrowDataset(self._delta_table.to_pyarrow_table(**scan_kwargs))

    def merge_delete(
        self,
        source: ArrowDataset,
        predicate: str,
        config: Optional[DedupConfig] = None,
    ) -> Dict[str, Any]:
        """Delete every target row matching a source row, in a single commit.

        Returns the merge metrics reported by delta-rs. Commit conflicts and
        I/O errors are raised unchanged.
        """
        config = config or DedupConfig()
        metrics = (
            self._delta_table.merge(
                source=source.to_arrow(),
                predicate=predicate,
                **config.merge_kwargs(),
            )
            .when_matched_delete()
            .execute()
        )
        logger.debug(f"Merge on {self.path} returned metrics {metrics}")
        return dict(metrics)

    def __repr__(self) -> str:
        return f"DeltaLakeTable(path={self.path}, version={self.version()})"
