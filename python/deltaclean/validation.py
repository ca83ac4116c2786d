"""
Validation of key arguments against a table schema.

All checks run before any data is scanned so that a rejected call has no
side effects.
"""

from typing import Iterable, List, Optional, Sequence

from deltaclean.errors import InvalidArgumentError, SchemaMismatchError


def validate_key_columns(key_columns: Optional[Sequence[str]], name: str = "key_columns") -> List[str]:
    """Reject a missing or empty key and return it as a list."""
    if key_columns is None or isinstance(key_columns, str):
        raise InvalidArgumentError(
            f"the input parameter {name} must be a non-empty list of column names"
        )
    columns = list(key_columns)
    if not columns:
        raise InvalidArgumentError(f"the input parameter {name} must not be empty")
    if any(not isinstance(col, str) or not col for col in columns):
        raise InvalidArgumentError(
            f"the input parameter {name} must only contain non-empty column names, got {columns}"
        )
    return columns


def validate_primary_key(primary_key: Optional[str]) -> str:
    if not primary_key or not isinstance(primary_key, str):
        raise InvalidArgumentError("the input parameter primary_key must not be empty")
    return primary_key


def validate_columns_exist(columns: Iterable[str], available: Sequence[str]) -> None:
    """Raise SchemaMismatchError naming every column missing from ``available``."""
    known = set(available)
    missing = [col for col in columns if col not in known]
    if missing:
        raise SchemaMismatchError(missing, list(available))
