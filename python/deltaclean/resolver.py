"""
Duplicate removal for Delta Lake tables.

Both modes compute a set of duplicate keys from the current snapshot and
then delete every live row whose key columns equal one of those keys, in a
single merge commit. Deletion is keyed on the match columns only, so rows
that share a key but differ in other columns are removed together.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import pyarrow.compute as pc

from deltaclean.config import DedupConfig, DedupMode
from deltaclean.dataset import ArrowDataset
from deltaclean.errors import InvalidArgumentError
from deltaclean.utilities import TableLike, open_delta_table
from deltaclean.validation import (
    validate_columns_exist,
    validate_key_columns,
    validate_primary_key,
)

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _quote(column: str) -> str:
    if _IDENTIFIER.match(column):
        return column
    return "`" + column.replace("`", "``") + "`"


def build_match_condition(
    columns: Sequence[str], target_alias: str = "old", source_alias: str = "new"
) -> str:
    """
    Build ``old.c1 = new.c1 AND old.c2 = new.c2 ...`` over ``columns``, in order.

    Raises:
        InvalidArgumentError: If ``columns`` is empty
    """
    if not columns:
        raise InvalidArgumentError("A match condition needs at least one column")
    return " AND ".join(
        f"{target_alias}.{_quote(col)} = {source_alias}.{_quote(col)}" for col in columns
    )


def _scratch_column(base: str, existing: Sequence[str]) -> str:
    name = base
    suffix = 0
    while name in existing:
        suffix += 1
        name = f"{base}_{suffix}"
    return name


@dataclass(frozen=True)
class DuplicateSet:
    """Distinct match-key values of the rows found to be redundant."""

    mode: DedupMode
    match_columns: Tuple[str, ...]
    match_condition: str
    rows: ArrowDataset

    @property
    def num_rows(self) -> int:
        return self.rows.num_rows()

    def is_empty(self) -> bool:
        return self.num_rows == 0


@dataclass
class DedupResult:
    """Outcome of a duplicate removal call."""

    duplicates: DuplicateSet
    version: int
    metrics: Dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def rows_deleted(self) -> int:
        return int(self.metrics.get("num_target_rows_deleted", 0) or 0)


class DuplicateResolver:
    """Finds and deletes duplicate rows in a transactional table.

    The table argument of every method is a path, a ``deltalake.DeltaTable``,
    or any handle providing ``history``, ``column_names``, ``to_dataset``,
    ``merge_delete`` and ``version`` (see ``DeltaLakeTable``).

    Calls on the same table must not run concurrently: the duplicate set is
    read from one snapshot and only the final delete is atomic.
    """

    def __init__(self, config: Optional[DedupConfig] = None):
        self.config = config or DedupConfig()

    def find_all_duplicates(self, table: TableLike, key_columns: Sequence[str]) -> DuplicateSet:
        """Keys shared by more than one row."""
        key_columns = validate_key_columns(key_columns)
        handle = self._open(table)
        validate_columns_exist(key_columns, handle.column_names())

        dataset = handle.to_dataset()
        count_column = _scratch_column("__dedup_count", dataset.column_names)
        duplicates = (
            dataset.window_count(key_columns, output_column=count_column)
            .filter(pc.field(count_column) > 1)
            .project(key_columns)
            .distinct()
        )
        return self._duplicate_set(DedupMode.REMOVE_ALL, key_columns, duplicates)

    def find_duplicates_keep_one(
        self,
        table: TableLike,
        primary_key: str,
        extra_key_columns: Optional[Sequence[str]] = None,
    ) -> DuplicateSet:
        """Keys of every row ranked after the first in its group."""
        primary_key = validate_primary_key(primary_key)
        if extra_key_columns:
            extra_key_columns = validate_key_columns(extra_key_columns, "extra_key_columns")
        else:
            extra_key_columns = []

        handle = self._open(table)
        to_check = list(extra_key_columns)
        if self.config.validate_primary_key:
            to_check.insert(0, primary_key)
        validate_columns_exist(to_check, handle.column_names())

        partition_columns = extra_key_columns or [primary_key]
        # dict.fromkeys keeps order while dropping a primary key repeated in the extras
        match_columns = list(dict.fromkeys([primary_key] + extra_key_columns))

        dataset = handle.to_dataset()
        rank_column = _scratch_column("__dedup_rank", dataset.column_names)
        duplicates = (
            dataset.window_rank(partition_columns, primary_key, output_column=rank_column)
            .filter(pc.field(rank_column) > 1)
            .project(match_columns)
            .distinct()
        )
        return self._duplicate_set(DedupMode.KEEP_ONE, match_columns, duplicates)

    def remove_all_duplicates(self, table: TableLike, key_columns: Sequence[str]) -> DedupResult:
        """Delete every row whose key appears more than once. No row of a duplicated key survives."""
        validate_key_columns(key_columns)
        handle = self._open(table)
        return self._delete(handle, self.find_all_duplicates(handle, key_columns))

    def remove_duplicates_keep_one(
        self,
        table: TableLike,
        primary_key: str,
        extra_key_columns: Optional[Sequence[str]] = None,
    ) -> DedupResult:
        """Delete duplicates, keeping the row with the smallest primary key in each group.

        Groups are formed by ``extra_key_columns`` when given, otherwise by the
        primary key itself.
        """
        validate_primary_key(primary_key)
        if extra_key_columns:
            validate_key_columns(extra_key_columns, "extra_key_columns")
        handle = self._open(table)
        duplicates = self.find_duplicates_keep_one(handle, primary_key, extra_key_columns)
        return self._delete(handle, duplicates)

    def _open(self, table: TableLike):
        return open_delta_table(table, self.config.storage_options)

    def _duplicate_set(
        self, mode: DedupMode, match_columns: Sequence[str], rows: ArrowDataset
    ) -> DuplicateSet:
        condition = build_match_condition(
            match_columns, self.config.target_alias, self.config.source_alias
        )
        logger.debug(
            f"Found {rows.num_rows()} duplicate keys (mode={mode.value}) matching on: {condition}"
        )
        return DuplicateSet(mode, tuple(match_columns), condition, rows)

    def _delete(self, handle, duplicates: DuplicateSet) -> DedupResult:
        if self.config.dry_run:
            logger.info(
                f"Dry run: {duplicates.num_rows} duplicate keys found, nothing deleted"
            )
            return DedupResult(duplicates, handle.version(), dry_run=True)

        if duplicates.is_empty():
            logger.info("No duplicate keys found. Skipping delete.")
            return DedupResult(duplicates, handle.version())

        try:
            metrics = handle.merge_delete(
                duplicates.rows, duplicates.match_condition, self.config
            )
        except Exception as e:
            logger.error(f"Duplicate delete failed for {handle!r}: {e}")
            raise

        result = DedupResult(duplicates, handle.version(), metrics)
        logger.info(
            f"Deleted {result.rows_deleted} rows for {duplicates.num_rows} duplicate keys "
            f"(mode={duplicates.mode.value}, version={result.version})"
        )
        return result


def find_duplicates(
    table: TableLike,
    key_columns: Optional[Sequence[str]] = None,
    *,
    primary_key: Optional[str] = None,
    config: Optional[DedupConfig] = None,
) -> DuplicateSet:
    """
    Compute the duplicate set without deleting anything.

    With ``primary_key`` this follows keep-one semantics and ``key_columns``
    are the extra grouping columns; without it every row of a duplicated
    ``key_columns`` group is reported.
    """
    resolver = DuplicateResolver(config)
    if primary_key is not None:
        return resolver.find_duplicates_keep_one(table, primary_key, key_columns)
    return resolver.find_all_duplicates(table, key_columns)


def remove_all_duplicates(
    table: TableLike,
    key_columns: Sequence[str],
    *,
    config: Optional[DedupConfig] = None,
) -> DedupResult:
    """
    Remove every row whose ``key_columns`` values occur more than once.

    Args:
        table: Path to the table, a ``deltalake.DeltaTable`` or a table handle
        key_columns: Non-empty list of columns forming the duplication key
        config: Optional resolver configuration

    Raises:
        InvalidArgumentError: If ``key_columns`` is empty
        SchemaMismatchError: If a key column is not in the table schema

    Examples:
        >>> from deltaclean import remove_all_duplicates
        >>> remove_all_duplicates("s3://bucket/table", ["customer_id"]) # doctest: +SKIP
    """
    return DuplicateResolver(config).remove_all_duplicates(table, key_columns)


def remove_duplicates_keep_one(
    table: TableLike,
    primary_key: str,
    extra_key_columns: Optional[Sequence[str]] = None,
    *,
    config: Optional[DedupConfig] = None,
) -> DedupResult:
    """
    Remove duplicate rows, keeping the one with the smallest ``primary_key``.

    Args:
        table: Path to the table, a ``deltalake.DeltaTable`` or a table handle
        primary_key: Column ordering each group; also part of the match key
        extra_key_columns: Columns forming the duplication key. Defaults to
            the primary key alone.
        config: Optional resolver configuration

    Raises:
        InvalidArgumentError: If ``primary_key`` is empty
        SchemaMismatchError: If a key column is not in the table schema

    Examples:
        >>> from deltaclean import remove_duplicates_keep_one
        >>> remove_duplicates_keep_one( # doctest: +SKIP
        ...     "s3://bucket/table",
        ...     primary_key="id",
        ...     extra_key_columns=["email"],
        ... )
    """
    return DuplicateResolver(config).remove_duplicates_keep_one(
        table, primary_key, extra_key_columns
    )
