import re
from typing import Any, Dict, List, Optional

import pyarrow as pa
import pytest

from deltaclean.dataset import ArrowDataset


class InMemoryTable:
    """Table handle keeping its rows in a pyarrow.Table, for resolver tests."""

    def __init__(self, rows: List[Dict[str, Any]], schema: Optional[pa.Schema] = None):
        self._table = pa.Table.from_pylist(rows, schema=schema)
        self._version = 0
        self.merge_calls: List[Dict[str, Any]] = []
        self.scans = 0

    def version(self) -> int:
        return self._version

    def history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        entries = [{"version": v} for v in range(self._version, -1, -1)]
        return entries[:limit] if limit else entries

    def column_names(self) -> List[str]:
        return self._table.column_names

    def to_dataset(self, columns=None) -> ArrowDataset:
        self.scans += 1
        return ArrowDataset(self._table)

    def merge_delete(self, source: ArrowDataset, predicate: str, config=None) -> Dict[str, Any]:
        self.merge_calls.append({"source": source, "predicate": predicate})
        target_alias = config.target_alias if config else "old"
        columns = [
            col.strip("`")
            for col in re.findall(rf"{target_alias}\.(`[^`]+`|\w+) = ", predicate)
        ]
        # SQL equality: a null on either side never matches
        keys = {
            tuple(row[col] for col in columns)
            for row in source.to_pylist()
            if all(row[col] is not None for col in columns)
        }
        keep = [
            tuple(row[col] for col in columns) not in keys
            for row in self._table.to_pylist()
        ]
        deleted = keep.count(False)
        self._table = self._table.filter(pa.array(keep, type=pa.bool_()))
        self._version += 1
        return {"num_target_rows_deleted": deleted}

    def rows(self, sort_by: str = "id") -> List[Dict[str, Any]]:
        return self._table.sort_by(sort_by).to_pylist()


class HistoryOnlyTable:
    def __init__(self, versions: List[int]):
        self._versions = versions

    def history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        entries = [{"version": v, "operation": "WRITE"} for v in self._versions]
        return entries[:limit] if limit else entries


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "a": "x"},
        {"id": 2, "a": "x"},
        {"id": 3, "a": "y"},
    ]


@pytest.fixture
def sample_table(sample_rows):
    return InMemoryTable(sample_rows)


@pytest.fixture
def make_table():
    return InMemoryTable


@pytest.fixture
def history_table():
    return HistoryOnlyTable
