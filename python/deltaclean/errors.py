"""
Exception types raised by deltaclean.

Failures coming from the Delta Lake engine itself (I/O errors, commit
conflicts) are not wrapped and propagate as raised by ``deltalake``.
"""

from typing import List, Optional, Sequence


class DeltaCleanError(Exception):
    """Base class for errors raised by deltaclean."""


class InvalidArgumentError(DeltaCleanError, ValueError):
    """A required key argument was empty or missing."""


class SchemaMismatchError(DeltaCleanError, ValueError):
    """One or more key columns do not exist in the table schema."""

    def __init__(
        self,
        missing_columns: Sequence[str],
        available_columns: Optional[Sequence[str]] = None,
    ):
        self.missing_columns: List[str] = list(missing_columns)
        self.available_columns: List[str] = list(available_columns or [])
        message = f"Columns {self.missing_columns} not found in table schema."
        if self.available_columns:
            message += f" Available columns: {self.available_columns}."
        super().__init__(message)


class NotFoundError(DeltaCleanError, LookupError):
    """The table, or a history entry for it, does not exist."""
