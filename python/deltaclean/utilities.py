"""
Helpers for opening Delta Lake tables and reading their version.

This module contains cloud credential detection used when a table is opened
by path, path validation, and the ``latest_version`` lookup.
"""

import logging
import os
from typing import Any, Dict, Optional, Union

from deltalake import DeltaTable
from deltalake.exceptions import TableNotFoundError

from deltaclean.errors import NotFoundError
from deltaclean.table import DeltaLakeTable

logger = logging.getLogger(__name__)

TableLike = Union[str, "os.PathLike[str]", DeltaTable, DeltaLakeTable]

_CLOUD_SCHEMES = (
    "s3://",
    "s3a://",
    "gs://",
    "gcs://",
    "abfss://",
    "abfs://",
    "adl://",
)
_SUPPORTED_SCHEMES = _CLOUD_SCHEMES + ("file://", "memory://", "hdfs://")


class AWSUtilities:
    """Amazon Web Services credential detection."""

    @staticmethod
    def _get_aws_credentials() -> Dict[str, str]:
        """
        Read credentials from the default boto3 session.

        Returns:
            Dict with AWS credentials, empty if none could be resolved
        """
        try:
            import boto3
        except ImportError:
            logger.warning(
                "boto3 not available. Install deltaclean[aws] for automatic credential detection."
            )
            return {}

        session = boto3.Session()
        credentials = session.get_credentials()
        if credentials is None:
            return {}

        frozen = credentials.get_frozen_credentials()
        options = {
            "AWS_ACCESS_KEY_ID": frozen.access_key,
            "AWS_SECRET_ACCESS_KEY": frozen.secret_key,
            "AWS_REGION": session.region_name or "us-east-1",
        }
        if frozen.token:
            options["AWS_SESSION_TOKEN"] = frozen.token
        return options

    @staticmethod
    def get_s3_storage_options(path: str) -> Dict[str, str]:
        """
        Get S3 storage options with automatic credential detection.

        Args:
            path: S3 path

        Returns:
            Dict with S3 storage options
        """
        storage_options = AWSUtilities._get_aws_credentials()
        if not storage_options:
            logger.debug(f"No AWS credentials detected for {path}")
        return storage_options


class AzureUtilities:
    """Microsoft Azure credential detection."""

    @staticmethod
    def _get_azure_credential():
        try:
            from azure.core.exceptions import ClientAuthenticationError
            from azure.identity import DefaultAzureCredential
        except ImportError:
            logger.warning(
                "azure-identity not available. Install deltaclean[azure] for automatic credential detection."
            )
            return None

        credential = DefaultAzureCredential()
        try:
            # Fails fast when no credential source is configured.
            credential.get_token("https://storage.azure.com/.default")
        except ClientAuthenticationError as e:
            logger.debug(f"Azure credential detection failed: {e}")
            return None
        return credential

    @staticmethod
    def get_azure_storage_options(path: str) -> Dict[str, str]:
        """
        Get Azure storage options with automatic credential detection.

        Args:
            path: Azure storage path

        Returns:
            Dict with Azure storage options
        """
        credential = AzureUtilities._get_azure_credential()
        if credential is None:
            logger.debug(f"No Azure credentials detected for {path}")
            return {}
        token = credential.get_token("https://storage.azure.com/.default")
        return {"AZURE_STORAGE_TOKEN": token.token}


def validate_path(path: str) -> None:
    """
    Validate a Delta table path.

    Args:
        path: Path to validate

    Raises:
        ValueError: If path is invalid
    """
    if not path or not isinstance(path, str):
        raise ValueError("Path must be a non-empty string")

    path_lower = path.lower()
    if path_lower.startswith(_SUPPORTED_SCHEMES):
        if path_lower.startswith(_CLOUD_SCHEMES) and len(path.rstrip("/").split("/")) < 4:
            raise ValueError(f"Cloud storage path appears incomplete: {path}")
    elif path_lower.startswith("azure://"):
        raise ValueError(
            "Use 'abfss://' or 'abfs://' instead of 'azure://' for Azure paths"
        )
    elif "://" in path:
        logger.warning(f"Unrecognized path scheme for: {path}")


def resolve_storage_options(
    path: str, storage_options: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Merge user-provided storage options over options detected for ``path``.

    User-provided options take precedence.
    """
    path_lower = path.lower()
    if path_lower.startswith(("s3://", "s3a://")):
        detected = AWSUtilities.get_s3_storage_options(path)
    elif path_lower.startswith(("abfss://", "abfs://", "adl://")):
        detected = AzureUtilities.get_azure_storage_options(path)
    else:
        detected = {}

    merged = dict(detected)
    merged.update(storage_options or {})
    return merged


def try_get_deltatable(
    table_uri: str, storage_options: Optional[Dict[str, str]] = None
) -> Optional[DeltaLakeTable]:
    """
    Open the Delta table at ``table_uri``, returning None if there is none.

    Args:
        table_uri: Path to the Delta table
        storage_options: Storage options for the filesystem

    Returns:
        DeltaLakeTable if a table exists at the path, None otherwise
    """
    try:
        return DeltaLakeTable.for_path(table_uri, storage_options)
    except TableNotFoundError:
        return None


def open_delta_table(
    table: TableLike, storage_options: Optional[Dict[str, str]] = None
) -> Any:
    """
    Turn a path, a ``deltalake.DeltaTable`` or a table handle into a table handle.

    Paths are validated and opened with detected storage options. Any other
    object is assumed to already provide the table operations and is
    returned as is.

    Raises:
        NotFoundError: If no Delta table exists at the given path
    """
    if isinstance(table, os.PathLike):
        table = os.fspath(table)
    if isinstance(table, str):
        validate_path(table)
        opened = try_get_deltatable(table, resolve_storage_options(table, storage_options))
        if opened is None:
            raise NotFoundError(f"No Delta table found at {table}")
        return opened
    if isinstance(table, DeltaTable):
        return DeltaLakeTable(table)
    return table


def latest_version(
    table: TableLike, *, storage_options: Optional[Dict[str, str]] = None
) -> int:
    """
    Get the latest committed version of a Delta table.

    Args:
        table: Path to the table, a ``deltalake.DeltaTable`` or a table handle
        storage_options: Cloud storage options, used when ``table`` is a path

    Returns:
        Version number of the most recent history entry

    Raises:
        NotFoundError: If the table does not exist or has no history

    Examples:
        >>> from deltaclean import latest_version
        >>> latest_version("s3://bucket/table") # doctest: +SKIP
        3
    """
    handle = open_delta_table(table, storage_options)
    history = handle.history(1)
    if not history:
        raise NotFoundError(f"Delta table {table} has no committed history")
    return int(history[0]["version"])
