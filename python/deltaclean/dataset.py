"""
Tabular dataset operations backed by PyArrow.

``ArrowDataset`` is the small query surface the duplicate resolver needs:
projection, filtering, distinct, and per-partition window count and rank.
Every operation returns a new dataset; the wrapped table is never mutated.
"""

import logging
import math
from collections import Counter, defaultdict
from typing import Any, Dict, List, Sequence, Tuple, Union

import pyarrow as pa
import pyarrow.compute as pc

logger = logging.getLogger(__name__)

Predicate = Union[pc.Expression, pa.Array, pa.ChunkedArray]

# Stands in for every NaN in a partition key so that NaNs group together.
_NAN_KEY = object()


class ArrowDataset:
    """Immutable view over a ``pyarrow.Table``."""

    def __init__(self, table: pa.Table):
        if not isinstance(table, pa.Table):
            raise TypeError(f"Expected pyarrow.Table, got {type(table).__name__}")
        self._table = table

    @classmethod
    def from_pylist(cls, rows: List[Dict[str, Any]], schema: pa.Schema = None) -> "ArrowDataset":
        return cls(pa.Table.from_pylist(rows, schema=schema))

    @property
    def column_names(self) -> List[str]:
        return self._table.column_names

    @property
    def schema(self) -> pa.Schema:
        return self._table.schema

    def num_rows(self) -> int:
        return self._table.num_rows

    def __len__(self) -> int:
        return self._table.num_rows

    def to_arrow(self) -> pa.Table:
        return self._table

    def to_pylist(self) -> List[Dict[str, Any]]:
        return self._table.to_pylist()

    def project(self, columns: Sequence[str]) -> "ArrowDataset":
        """Keep only ``columns``, in the given order."""
        return ArrowDataset(self._table.select(list(columns)))

    def filter(self, predicate: Predicate) -> "ArrowDataset":
        """Keep rows for which ``predicate`` is true (an expression or boolean mask)."""
        return ArrowDataset(self._table.filter(predicate))

    def distinct(self) -> "ArrowDataset":
        """Drop repeated rows. Null values compare equal to each other here."""
        if self._table.num_rows == 0:
            return self
        # Grouping on every column with no aggregates yields the distinct rows.
        return ArrowDataset(self._table.group_by(self.column_names).aggregate([]))

    def window_count(
        self, partition_columns: Sequence[str], output_column: str = "count"
    ) -> "ArrowDataset":
        """Append the size of each row's partition as ``output_column``."""
        self._check_output_column(output_column)
        keys = self._partition_keys(partition_columns)
        sizes = Counter(keys)
        counts = pa.array([sizes[key] for key in keys], type=pa.int64())
        return ArrowDataset(self._table.append_column(output_column, counts))

    def window_rank(
        self,
        partition_columns: Sequence[str],
        order_column: str,
        output_column: str = "rank",
    ) -> "ArrowDataset":
        """Append a 1-based row number within each partition, ordered by ``order_column``.

        Rows are ordered ascending with nulls first. Rows with equal order
        values keep their relative position in the table.
        """
        self._check_output_column(output_column)
        num_rows = self._table.num_rows
        keys = self._partition_keys(partition_columns)

        order_values = self._table.column(order_column)
        ordering = pa.table(
            [
                pc.is_valid(order_values),
                order_values,
                pa.chunked_array([pa.array(range(num_rows), type=pa.int64())]),
            ],
            names=["has_value", "order", "position"],
        )
        sorted_positions = pc.sort_indices(
            ordering,
            sort_keys=[
                ("has_value", "ascending"),
                ("order", "ascending"),
                ("position", "ascending"),
            ],
        ).to_pylist()

        next_rank: Dict[Tuple, int] = defaultdict(lambda: 1)
        ranks = [0] * num_rows
        for position in sorted_positions:
            key = keys[position]
            ranks[position] = next_rank[key]
            next_rank[key] += 1

        return ArrowDataset(
            self._table.append_column(output_column, pa.array(ranks, type=pa.int64()))
        )

    def _partition_keys(self, partition_columns: Sequence[str]) -> List[Tuple]:
        if not partition_columns:
            raise ValueError("At least one partition column is required")
        values_lists = [
            [_group_value(value) for value in self._table.column(col).to_pylist()]
            for col in partition_columns
        ]
        if not self._table.num_rows:
            return []
        return list(zip(*values_lists))

    def _check_output_column(self, output_column: str) -> None:
        if output_column in self._table.column_names:
            raise ValueError(
                f"Output column '{output_column}' already exists. Available columns: {self.column_names}."
            )

    def __repr__(self) -> str:
        return f"ArrowDataset(num_rows={self.num_rows()}, columns={self.column_names})"


def _group_value(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return _NAN_KEY
    return value
